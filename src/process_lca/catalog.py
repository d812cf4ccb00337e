"""
Unit operation catalog.

Each operation is a ProcessDefinition holding its form fields, hidden
defaults and three pure formulas. The formulas read every parameter through
to_float, so an empty or garbage parameter map yields 0.0 rather than NaN.
Parameters are named in snake_case; `ambient_c` is injected by the evaluator.
"""
import logging
from enum import Enum
from typing import Any, Dict, Optional

from .constants import (
    DEFAULT_GRID_FACTOR, LATENT_HEAT_WATER_KJ_PER_KG, KJ_PER_KWH,
    CALCINATION_EFFICIENCY_RANGE, SINTERING_EFFICIENCY_RANGE, MILLING_EFFICIENCY_RANGE,
    PUMP_KW_PER_BAR_M3H,
)
from .models import ParamSpec, ProcessDefinition, Step
from .utils.calculations import to_float, clamp, sensible_heat_kwh

logger = logging.getLogger(__name__)


class UnitOperation(str, Enum):
    CALCINATION = "calcination"
    SINTERING = "sintering"
    MILLING = "milling"
    DRYING = "drying"
    FILTRATION = "filtration"
    MIXING = "mixing"
    WASHING = "washing"
    CUSTOM = "custom"


def _p(params: Dict[str, Any], key: str) -> float:
    return to_float(params.get(key))


def default_emissions(params: Dict[str, Any], energy_kwh: float, grid_factor: Optional[float] = None) -> float:
    """energy * grid factor; the constant factor is only a fallback when no dataset is available."""
    factor = DEFAULT_GRID_FACTOR if grid_factor is None else to_float(grid_factor)
    return to_float(energy_kwh) * factor


def no_water(params: Dict[str, Any]) -> float:
    return 0.0


# ============================================================================
# FORMULAS
# ============================================================================

def _furnace_energy(params: Dict[str, Any], efficiency_range) -> float:
    """
    Batch furnace: sensible heat of the charge plus standby losses,
    scaled by an overhead factor and divided by the clamped efficiency.
    """
    sensible = sensible_heat_kwh(
        _p(params, "mass_kg"), _p(params, "specific_heat"),
        _p(params, "temperature_c"), _p(params, "ambient_c"),
    )
    standby = _p(params, "standby_kw") * _p(params, "duration_h")
    gross = (sensible + standby) * _p(params, "overhead_factor")
    efficiency = clamp(_p(params, "furnace_efficiency"), efficiency_range)
    return gross / efficiency


def calcination_energy(params: Dict[str, Any]) -> float:
    return _furnace_energy(params, CALCINATION_EFFICIENCY_RANGE)


def sintering_energy(params: Dict[str, Any]) -> float:
    return _furnace_energy(params, SINTERING_EFFICIENCY_RANGE)


def milling_energy(params: Dict[str, Any]) -> float:
    shaft = _p(params, "motor_power_kw") * _p(params, "duration_h") * _p(params, "load_factor")
    return shaft / clamp(_p(params, "mill_efficiency"), MILLING_EFFICIENCY_RANGE)


def milling_water(params: Dict[str, Any]) -> float:
    return _p(params, "water_l")


def drying_energy(params: Dict[str, Any]) -> float:
    sensible = sensible_heat_kwh(
        _p(params, "mass_kg"), _p(params, "specific_heat"),
        _p(params, "temperature_c"), _p(params, "ambient_c"),
    )
    latent = _p(params, "water_removed_kg") * LATENT_HEAT_WATER_KJ_PER_KG / KJ_PER_KWH
    fan = _p(params, "fan_power_kw") * _p(params, "duration_h")
    return sensible + latent + fan


def drying_water(params: Dict[str, Any]) -> float:
    # Evaporated water leaves the process.
    return -_p(params, "water_removed_kg")


def filtration_energy(params: Dict[str, Any]) -> float:
    power_kw = PUMP_KW_PER_BAR_M3H * _p(params, "pressure_bar") * _p(params, "flow_m3h")
    return power_kw * _p(params, "duration_h")


def filtration_water(params: Dict[str, Any]) -> float:
    return _p(params, "wash_water_l")


def mixing_energy(params: Dict[str, Any]) -> float:
    return _p(params, "power_kw") * _p(params, "duration_h")


def mixing_water(params: Dict[str, Any]) -> float:
    return _p(params, "water_l")


def washing_energy(params: Dict[str, Any]) -> float:
    heating = sensible_heat_kwh(
        _p(params, "water_l"), _p(params, "specific_heat"),
        _p(params, "temperature_c"), _p(params, "ambient_c"),
    )
    return heating + _p(params, "pump_power_kw") * _p(params, "duration_h")


def washing_water(params: Dict[str, Any]) -> float:
    return _p(params, "water_l")


def custom_energy(params: Dict[str, Any]) -> float:
    return _p(params, "energy_kwh")


def custom_water(params: Dict[str, Any]) -> float:
    return _p(params, "water_kg")


# ============================================================================
# REGISTRY
# ============================================================================

_FURNACE_INPUTS = [
    ParamSpec("temperature_c", "Temperature (°C)", step=1, placeholder="e.g. 800"),
    ParamSpec("duration_h", "Duration (h)", step=0.1, placeholder="e.g. 2"),
    ParamSpec("mass_kg", "Charge mass (kg)", step=0.1, placeholder="e.g. 1"),
    ParamSpec("furnace_efficiency", "Furnace efficiency (0-1)", step=0.01, placeholder="e.g. 0.6", default_value=0.6),
]

CATALOG: Dict[str, ProcessDefinition] = {
    UnitOperation.CALCINATION.value: ProcessDefinition(
        key=UnitOperation.CALCINATION.value,
        label="Calcination",
        inputs=_FURNACE_INPUTS,
        defaults={"specific_heat": 0.46, "standby_kw": 1.2, "overhead_factor": 1.2, "furnace_efficiency": 0.6},
        energy_fn=calcination_energy,
        water_fn=no_water,
        emissions_fn=default_emissions,
    ),
    UnitOperation.SINTERING.value: ProcessDefinition(
        key=UnitOperation.SINTERING.value,
        label="Sintering",
        inputs=_FURNACE_INPUTS,
        defaults={"specific_heat": 0.8, "standby_kw": 2.0, "overhead_factor": 1.3, "furnace_efficiency": 0.6},
        energy_fn=sintering_energy,
        water_fn=no_water,
        emissions_fn=default_emissions,
    ),
    UnitOperation.MILLING.value: ProcessDefinition(
        key=UnitOperation.MILLING.value,
        label="Milling",
        inputs=[
            ParamSpec("motor_power_kw", "Motor power (kW)", step=0.1, placeholder="e.g. 5"),
            ParamSpec("duration_h", "Duration (h)", step=0.1, placeholder="e.g. 1"),
            ParamSpec("mill_efficiency", "Mill efficiency (0-1)", step=0.01, placeholder="e.g. 0.7", default_value=0.7),
            ParamSpec("water_l", "Process water, wet milling (L)", step=0.1, placeholder="0"),
        ],
        defaults={"load_factor": 0.8, "mill_efficiency": 0.7},
        energy_fn=milling_energy,
        water_fn=milling_water,
        emissions_fn=default_emissions,
    ),
    UnitOperation.DRYING.value: ProcessDefinition(
        key=UnitOperation.DRYING.value,
        label="Drying",
        inputs=[
            ParamSpec("temperature_c", "Temperature (°C)", step=1, placeholder="e.g. 110"),
            ParamSpec("mass_kg", "Dry solids mass (kg)", step=0.1, placeholder="e.g. 1"),
            ParamSpec("water_removed_kg", "Water removed (kg)", step=0.1, placeholder="e.g. 0.5"),
            ParamSpec("duration_h", "Duration (h)", step=0.1, placeholder="e.g. 4"),
        ],
        defaults={"specific_heat": 1.0, "fan_power_kw": 0.5},
        energy_fn=drying_energy,
        water_fn=drying_water,
        emissions_fn=default_emissions,
    ),
    UnitOperation.FILTRATION.value: ProcessDefinition(
        key=UnitOperation.FILTRATION.value,
        label="Filtration",
        inputs=[
            ParamSpec("pressure_bar", "Pressure (bar)", step=0.1, placeholder="e.g. 3"),
            ParamSpec("flow_m3h", "Flow (m³/h)", step=0.1, placeholder="e.g. 2"),
            ParamSpec("duration_h", "Duration (h)", step=0.1, placeholder="e.g. 1"),
            ParamSpec("wash_water_l", "Cake wash water (L)", step=1, placeholder="0"),
        ],
        defaults={},
        energy_fn=filtration_energy,
        water_fn=filtration_water,
        emissions_fn=default_emissions,
    ),
    UnitOperation.MIXING.value: ProcessDefinition(
        key=UnitOperation.MIXING.value,
        label="Mixing",
        inputs=[
            ParamSpec("power_kw", "Agitator power (kW)", step=0.1, placeholder="e.g. 1.5"),
            ParamSpec("duration_h", "Duration (h)", step=0.1, placeholder="e.g. 0.5"),
            ParamSpec("water_l", "Water added (L)", step=0.1, placeholder="0"),
        ],
        defaults={},
        energy_fn=mixing_energy,
        water_fn=mixing_water,
        emissions_fn=default_emissions,
    ),
    UnitOperation.WASHING.value: ProcessDefinition(
        key=UnitOperation.WASHING.value,
        label="Washing",
        inputs=[
            ParamSpec("water_l", "Wash water (L)", step=1, placeholder="e.g. 20"),
            ParamSpec("temperature_c", "Wash temperature (°C)", step=1, placeholder="e.g. 60"),
            ParamSpec("pump_power_kw", "Pump power (kW)", step=0.1, placeholder="e.g. 0.4"),
            ParamSpec("duration_h", "Duration (h)", step=0.1, placeholder="e.g. 0.5"),
        ],
        defaults={"specific_heat": 4.186},
        energy_fn=washing_energy,
        water_fn=washing_water,
        emissions_fn=default_emissions,
    ),
    UnitOperation.CUSTOM.value: ProcessDefinition(
        key=UnitOperation.CUSTOM.value,
        label="Custom",
        inputs=[
            ParamSpec("energy_kwh", "Energy (kWh)", step=0.1, placeholder="0"),
            ParamSpec("water_kg", "Water (kg)", step=0.1, placeholder="0"),
        ],
        defaults={},
        energy_fn=custom_energy,
        water_fn=custom_water,
        emissions_fn=default_emissions,
    ),
}


def get_definition(key: str) -> ProcessDefinition:
    """Catalog entry for `key`; unknown keys are treated as custom steps."""
    definition = CATALOG.get(key)
    if definition is None:
        logger.warning(f"Unknown unit operation '{key}', treating as custom")
        return CATALOG[UnitOperation.CUSTOM.value]
    return definition


def step_label(step: Step) -> str:
    if step.custom_label:
        return step.custom_label
    definition = CATALOG.get(step.process_definition_key)
    return definition.label if definition else step.process_definition_key
