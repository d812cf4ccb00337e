import os
from typing import Literal
from .config import load_excel_config, PROJECT_ROOT

# ============================================================================
# SETTINGS & CONSTANTS
# ============================================================================

# Load configuration immediately (blocking). A missing workbook is fine:
# every tunable below has a compiled-in default.
_config = load_excel_config()


def _get(key, default):
    """Fetch a workbook override, cast to the type of the compiled-in default."""
    if key not in _config:
        return default
    try:
        return type(default)(_config[key])
    except (TypeError, ValueError):
        return default


# Ambient / Grid
AMBIENT_C = _get("AMBIENT_C", 25.0)
DEFAULT_GRID_FACTOR = _get("DEFAULT_GRID_FACTOR", 0.45)   # kg CO2e per kWh

# Reporting
DECIMALS = _get("DECIMALS", 2)

# Persistence
STORAGE_PATH = _get("STORAGE_PATH", os.path.join(PROJECT_ROOT, "data", "process_lca_store.json"))
STORAGE_KEY_IMPACT_DB = "process_lca.impact_db"
STORAGE_KEY_ELECTRICITY = "process_lca.electricity_selected"
STORAGE_KEY_PROCESSES = "process_lca.processes"

# Thermodynamics
KJ_PER_KWH = 3600.0
LATENT_HEAT_WATER_KJ_PER_KG = 2257.0
LITRES_TO_KG_WATER = 1.0

# Furnace / motor efficiency clamps (min, max)
CALCINATION_EFFICIENCY_RANGE = (0.2, 0.95)
SINTERING_EFFICIENCY_RANGE = (0.2, 0.95)
MILLING_EFFICIENCY_RANGE = (0.3, 0.95)

# Pump power: kW per (bar * m3/h), hydraulic power over a ~60 % pump
PUMP_KW_PER_BAR_M3H = 0.0463

# Indicator used for every emissions figure
EMISSIONS_INDICATOR = "GWP"

# ============================================================================
# TYPES (Code constructs, not excel parameters)
# ============================================================================

ImpactCategory = Literal["electricity", "chemicals", "waters"]
IndicatorName = Literal["GWP", "ADP", "WaterUse", "AP", "FETP"]
ProcessName = Literal["A", "B"]
Metric = Literal["energy", "water", "emissions"]

IMPACT_CATEGORIES = ("electricity", "chemicals", "waters")
INDICATORS = ("GWP", "ADP", "WaterUse", "AP", "FETP")
PROCESS_NAMES = ("A", "B")
METRICS = ("energy", "water", "emissions")
