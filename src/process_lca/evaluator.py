import logging
import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from .audit import audit_logger
from .catalog import get_definition, step_label
from .constants import AMBIENT_C, INDICATORS, EMISSIONS_INDICATOR, LITRES_TO_KG_WATER
from .impact_db import find_record
from .models import ImpactDatabase, ImpactRecord, ProcessDefinition, Step, StepResult
from .utils.calculations import to_float

logger = logging.getLogger(__name__)


def build_params(step: Step, definition: ProcessDefinition, ambient_c: float) -> Dict[str, Any]:
    """
    Catalog defaults overlaid with the step's entered values.
    Blank entries (None / "") count as missing and keep the default.
    """
    params: Dict[str, Any] = definition.default_params()
    for key, value in step.param_values.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        params[key] = value
    params["ambient_c"] = to_float(ambient_c)
    return params


def _safe_call(fn: Callable[..., float], *args, label: str = "", **kwargs) -> float:
    """Formula call that yields 0.0 on exceptions or non-finite results."""
    try:
        value = float(fn(*args, **kwargs))
    except Exception as e:
        logger.warning(f"{label} formula failed ({e}); using 0")
        return 0.0
    if not math.isfinite(value):
        logger.warning(f"{label} formula returned {value}; using 0")
        return 0.0
    return value


def resolve_electricity(impact_db: ImpactDatabase, selected_name: Optional[str]) -> Tuple[Optional[ImpactRecord], List[str]]:
    """Selected electricity record, else the first available one, else None."""
    warnings: List[str] = []
    record = find_record(impact_db.electricity, selected_name) if selected_name else None
    if record is None:
        if selected_name:
            warnings.append(f"Electricity dataset '{selected_name}' not found")
        record = impact_db.electricity[0] if impact_db.electricity else None
        if record is None:
            warnings.append("No electricity dataset available; energy emissions set to 0")
    return record, warnings


def _finite(value: float, what: str, warnings: List[str]) -> float:
    """`value` when finite, else 0.0 plus a warning (overflowing amount x factor)."""
    if math.isfinite(value):
        return value
    warnings.append(f"{what} is not a finite number; using 0")
    return 0.0


def _usage_sum(usages, records: List[ImpactRecord], kind: str, totals: Dict[str, float], warnings: List[str]) -> float:
    """
    Sum amount * GWP over usages; every indicator is accumulated into `totals`.
    An unresolved name contributes 0 and adds a warning.
    """
    emissions = 0.0
    for usage in usages:
        amount = to_float(usage.amount)
        record = find_record(records, usage.name)
        if record is None:
            warnings.append(f"{kind} '{usage.name}' not found in impact database")
            continue
        what = f"{kind} '{usage.name}'"
        for indicator in INDICATORS:
            part = _finite(amount * to_float(record.indicator(indicator)), f"{what} {indicator}", warnings)
            totals[indicator] = _finite(totals[indicator] + part, f"{kind} {indicator} total", warnings)
        part = _finite(amount * to_float(record.indicator(EMISSIONS_INDICATOR)), f"{what} emissions", warnings)
        emissions = _finite(emissions + part, f"{kind} emissions total", warnings)
    return emissions


def evaluate_step(
    step: Step,
    definition: Optional[ProcessDefinition],
    impact_db: ImpactDatabase,
    ambient_c: float = AMBIENT_C,
    selected_electricity: Optional[str] = None,
    context: str = "",
) -> StepResult:
    """
    Compute energy, water and emissions for one step and cache the result on it.

    Emissions are split into energy, materials and water components; each
    component is floored at 0 before summing so a negative contribution
    cannot offset the others. Values are stored unrounded.
    """
    definition = definition or get_definition(step.process_definition_key)
    label = context or step_label(step)
    params = build_params(step, definition, ambient_c)

    energy_kwh = _safe_call(definition.energy_fn, params, label=f"{label}: energy")
    water_kg = _safe_call(definition.water_fn, params, label=f"{label}: water")

    warnings: List[str] = []
    indicators = {indicator: 0.0 for indicator in INDICATORS}

    materials_emissions = _usage_sum(step.materials, impact_db.chemicals, "Material", indicators, warnings)
    water_emissions = _usage_sum(step.waters, impact_db.waters, "Water", indicators, warnings)
    for usage in step.waters:
        water_kg = _finite(water_kg + to_float(usage.amount) * LITRES_TO_KG_WATER, "Water volume", warnings)

    electricity, elec_warnings = resolve_electricity(impact_db, selected_electricity)
    warnings.extend(elec_warnings)
    grid_factor = to_float(electricity.indicator(EMISSIONS_INDICATOR)) if electricity else 0.0
    energy_emissions = _safe_call(
        definition.emissions_fn, params, energy_kwh, grid_factor=grid_factor, label=f"{label}: emissions"
    )
    if electricity:
        for indicator in INDICATORS:
            part = _finite(energy_kwh * to_float(electricity.indicator(indicator)), f"Electricity {indicator}", warnings)
            indicators[indicator] = _finite(indicators[indicator] + part, f"{indicator} total", warnings)

    energy_part = max(0.0, energy_emissions)
    materials_part = max(0.0, materials_emissions)
    water_part = max(0.0, water_emissions)

    result = StepResult(
        energy_kwh=energy_kwh,
        water_kg=water_kg,
        emissions_kg=_finite(energy_part + materials_part + water_part, "Total emissions", warnings),
        emissions_energy_kg=energy_part,
        emissions_materials_kg=materials_part,
        emissions_water_kg=water_part,
        indicators=indicators,
        warnings=warnings,
    )
    step.computed = result

    for message in warnings:
        logger.warning(f"{label}: {message}")
    logger.debug(f"{label}: {result.rounded()}")

    audit_logger.log_calculation(
        context=f"{label}: emissions",
        formula="max(0, E(kWh)*EF_grid) + max(0, Σ m_i*EF_i) + max(0, Σ V_j*EF_j)",
        variables={
            "Energy_kWh": round(energy_kwh, 4),
            "EF_grid": grid_factor,
            "Grid": electricity.name if electricity else None,
            "Materials_kgCO2e": round(materials_emissions, 4),
            "Water_kgCO2e": round(water_emissions, 4),
            "Water_kg": round(water_kg, 4),
        },
        result=result.emissions_kg,
        unit="kgCO2e",
    )
    return result
