import math
import random

import pytest

from process_lca.comparison import compare, emissions_decomposition, step_breakdown, totals, totals_table
from process_lca.evaluator import evaluate_step
from process_lca.models import MaterialUsage, Process, Step, StepResult


def _step(energy, water, emissions, label=""):
    return Step(
        process_definition_key="custom",
        custom_label=label,
        computed=StepResult(energy_kwh=energy, water_kg=water, emissions_kg=emissions, emissions_energy_kg=emissions),
    )


def test_totals_is_sum_and_order_independent():
    steps = [_step(1.5, 2.0, 0.3), _step(0.25, -1.0, 0.7), _step(10.0, 0.0, 4.0)]
    process = Process("A", steps)
    t = totals(process)
    assert t.energy == pytest.approx(sum(s.computed.energy_kwh for s in steps))
    assert t.water == pytest.approx(1.0)
    assert t.emissions == pytest.approx(5.0)

    shuffled = list(steps)
    random.Random(7).shuffle(shuffled)
    t2 = totals(Process("A", shuffled))
    assert t2.energy == pytest.approx(t.energy)
    assert t2.water == pytest.approx(t.water)
    assert t2.emissions == pytest.approx(t.emissions)


def test_diff_is_signed_a_minus_b():
    a = Process("A", [_step(5.0, 1.0, 2.0)])
    b = Process("B", [_step(7.5, 0.5, 1.0)])
    result = compare(a, b)
    assert result.diff.energy == totals(a).energy - totals(b).energy
    assert result.diff.energy == -2.5
    assert result.diff.water == 0.5
    assert result.diff.emissions == 1.0


def test_compare_against_empty_process(small_db):
    step = Step(
        process_definition_key="calcination",
        param_values={"temperature_c": 800, "duration_h": 2, "mass_kg": 1, "furnace_efficiency": 0.6},
    )
    evaluate_step(step, None, small_db, 25, "Grid 0.45")
    a = Process("A", [step])
    result = compare(a, Process("B"))
    assert result.diff.energy == result.totals_a.energy
    assert result.diff.water == 0
    assert result.diff.emissions == result.totals_a.emissions
    assert result.totals_a.emissions == pytest.approx(2.249, abs=1e-3)
    assert result.max_energy.process_name == "A"


def test_max_steps_tie_break_first_in_a_then_b():
    a = Process("A", [_step(1, 0, 3, "a1"), _step(9, 0, 1, "a2")])
    b = Process("B", [_step(9, 5, 3, "b1"), _step(2, 5, 0, "b2")])
    result = compare(a, b)
    assert (result.max_energy.process_name, result.max_energy.step_index) == ("A", 1)
    assert (result.max_water.process_name, result.max_water.step_index) == ("B", 0)
    assert (result.max_emissions.process_name, result.max_emissions.step_index) == ("A", 0)
    assert result.max_emissions.label == "a1"


def test_no_steps_no_callouts():
    result = compare(Process("A"), Process("B"))
    assert result.max_energy is None
    assert result.max_water is None
    assert result.max_emissions is None
    assert step_breakdown(result).empty


def test_totals_aggregate_unrounded_values():
    steps = [_step(0.004, 0, 0.004) for _ in range(3)]
    t = totals(Process("A", steps))
    assert t.energy == pytest.approx(0.012)
    assert t.rounded()["energy"] == 0.01


def test_breakdown_tables(small_db):
    step = Step(process_definition_key="custom", param_values={"energy_kwh": 10},
                materials=[MaterialUsage("Reagent X", 1)])
    evaluate_step(step, None, small_db, 25, "Grid 0.45")
    result = compare(Process("A", [step]), Process("B", [_step(1, 1, 1, "b")]))

    df = step_breakdown(result)
    assert list(df["Process"]) == ["A", "B"]
    row = df.iloc[0]
    assert row["Emissions: Energy"] == pytest.approx(4.5)
    assert row["Emissions: Materials"] == pytest.approx(4.5)
    assert row["Emissions (kgCO2e)"] == pytest.approx(9.0)

    table = totals_table(result)
    assert table.loc["Energy (kWh)", "Difference (A-B)"] == pytest.approx(9.0)

    sources = emissions_decomposition(result)
    assert sources.loc["A", "Materials"] == pytest.approx(4.5)


def test_huge_usages_never_produce_nan(small_db):
    def heavy():
        step = Step(process_definition_key="custom", materials=[MaterialUsage("Reagent X", 1e308)])
        evaluate_step(step, None, small_db, 25, "Grid 0.45")
        return step

    result = compare(Process("A", [heavy()]), Process("B", [heavy()]))
    assert result.totals_a.emissions == 0.0
    assert result.diff.emissions == 0.0


def test_overflowing_totals_and_diff_are_zero():
    big = 1.5e308
    a = Process("A", [_step(big, big, big), _step(big, big, big)])
    b = Process("B", [_step(1, -big, 1)])
    result = compare(a, b)
    assert result.totals_a.energy == 0.0
    assert result.totals_a.emissions == 0.0
    assert result.totals_b.water == -big
    assert math.isfinite(result.diff.water)
    assert result.diff.energy == -1.0
