import logging
import math
from dataclasses import fields
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from .catalog import step_label
from .models import ComparisonResult, Process, ProcessTotals, Step, StepCallout

logger = logging.getLogger(__name__)

_METRIC_FIELDS = {
    "energy": "energy_kwh",
    "water": "water_kg",
    "emissions": "emissions_kg",
}


def totals(process: Process) -> ProcessTotals:
    """Component-wise sum of the cached step results (unrounded)."""
    result = ProcessTotals()
    for step in process.steps:
        c = step.computed
        result.energy += c.energy_kwh
        result.water += c.water_kg
        result.emissions += c.emissions_kg
        result.emissions_energy += c.emissions_energy_kg
        result.emissions_materials += c.emissions_materials_kg
        result.emissions_water += c.emissions_water_kg
    return _finite_totals(result, f"Process {process.name}")


def _finite_totals(result: ProcessTotals, what: str) -> ProcessTotals:
    """Replace any overflowed field with 0 so no inf/NaN reaches the views."""
    for f in fields(result):
        if not math.isfinite(getattr(result, f.name)):
            logger.warning(f"{what}: {f.name} is not finite; using 0")
            setattr(result, f.name, 0.0)
    return result


def _max_step(indexed: Iterable[Tuple[str, int, Step]], metric: str) -> Optional[StepCallout]:
    """First step holding the maximum value; strict > keeps the earliest on ties."""
    field_name = _METRIC_FIELDS[metric]
    best: Optional[StepCallout] = None
    for process_name, index, step in indexed:
        value = getattr(step.computed, field_name)
        if best is None or value > best.value:
            best = StepCallout(process_name=process_name, step_index=index, label=step_label(step), value=value)
    return best


def compare(process_a: Process, process_b: Process) -> ComparisonResult:
    """
    Totals for both processes, signed diff (A - B), and the most impactful
    step per metric across A then B.
    """
    totals_a = totals(process_a)
    totals_b = totals(process_b)
    indexed = [(process_a.name, i, s) for i, s in enumerate(process_a.steps)]
    indexed += [(process_b.name, i, s) for i, s in enumerate(process_b.steps)]

    result = ComparisonResult(
        totals_a=totals_a,
        totals_b=totals_b,
        diff=_finite_totals(totals_a - totals_b, "Difference (A-B)"),
        steps_a=list(process_a.steps),
        steps_b=list(process_b.steps),
        max_energy=_max_step(indexed, "energy"),
        max_water=_max_step(indexed, "water"),
        max_emissions=_max_step(indexed, "emissions"),
    )
    logger.debug(f"Comparison diff (A-B): {result.diff.rounded()}")
    return result


def step_breakdown(result: ComparisonResult) -> pd.DataFrame:
    """
    One row per step (A then B) with metrics and the emissions decomposition.
    Feeds the heatmap, sunburst and Sankey charts.
    """
    rows: List[dict] = []
    for process_name, steps in (("A", result.steps_a), ("B", result.steps_b)):
        for index, step in enumerate(steps):
            c = step.computed
            rows.append({
                "Process": process_name,
                "Step": index + 1,
                "Label": f"{process_name}{index + 1}: {step_label(step)}",
                "Operation": step.process_definition_key,
                "Energy (kWh)": c.energy_kwh,
                "Water (kg)": c.water_kg,
                "Emissions (kgCO2e)": c.emissions_kg,
                "Emissions: Energy": c.emissions_energy_kg,
                "Emissions: Materials": c.emissions_materials_kg,
                "Emissions: Water": c.emissions_water_kg,
            })
    columns = [
        "Process", "Step", "Label", "Operation", "Energy (kWh)", "Water (kg)",
        "Emissions (kgCO2e)", "Emissions: Energy", "Emissions: Materials", "Emissions: Water",
    ]
    return pd.DataFrame(rows, columns=columns)


def totals_table(result: ComparisonResult) -> pd.DataFrame:
    """Metric x (A, B, Difference) table."""
    data = {
        "A": [result.totals_a.energy, result.totals_a.water, result.totals_a.emissions],
        "B": [result.totals_b.energy, result.totals_b.water, result.totals_b.emissions],
        "Difference (A-B)": [result.diff.energy, result.diff.water, result.diff.emissions],
    }
    return pd.DataFrame(data, index=["Energy (kWh)", "Water (kg)", "Emissions (kgCO2e)"])


def emissions_decomposition(result: ComparisonResult) -> pd.DataFrame:
    """Per-process emissions by source category."""
    data = {
        "Energy": [result.totals_a.emissions_energy, result.totals_b.emissions_energy],
        "Materials": [result.totals_a.emissions_materials, result.totals_b.emissions_materials],
        "Water": [result.totals_a.emissions_water, result.totals_b.emissions_water],
    }
    return pd.DataFrame(data, index=["A", "B"])
