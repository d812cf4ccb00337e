import math

import pytest

from process_lca.catalog import (
    CATALOG, UnitOperation, get_definition, calcination_energy, milling_energy,
    drying_energy, drying_water, filtration_energy, default_emissions,
)
from process_lca.constants import DEFAULT_GRID_FACTOR, PUMP_KW_PER_BAR_M3H
from process_lca.utils.calculations import f2, to_float, clamp, sensible_heat_kwh


@pytest.mark.parametrize("raw, expected", [
    (None, 0.0), ("", 0.0), ("abc", 0.0), (float("nan"), 0.0), (float("inf"), 0.0),
    ("2.5", 2.5), ("1,5", 1.5), (3, 3.0), (True, 0.0), ([1], 0.0),
])
def test_to_float_coerces_garbage_to_zero(raw, expected):
    assert to_float(raw) == expected


def test_f2_uses_display_decimals():
    assert f2(4.99806) == "5.00"
    assert f2(-0.004) == "-0.00"
    assert f2(12) == "12.00"


def test_clamp():
    assert clamp(0.05, (0.2, 0.95)) == 0.2
    assert clamp(1.5, (0.2, 0.95)) == 0.95
    assert clamp(0.5, (0.2, 0.95)) == 0.5


def test_sensible_heat_never_negative():
    # Below ambient there is nothing to heat.
    assert sensible_heat_kwh(10, 1.0, 10, 25) == 0.0
    assert sensible_heat_kwh(1, 3.6, 35, 25) == pytest.approx(0.01)


@pytest.mark.parametrize("key", list(CATALOG))
def test_formulas_return_zero_for_empty_params(key):
    definition = CATALOG[key]
    energy = definition.energy_fn({})
    water = definition.water_fn({})
    assert energy == 0 and not math.isnan(energy)
    assert water == 0 and not math.isnan(water)
    assert definition.emissions_fn({}, 0.0) == 0


@pytest.mark.parametrize("key", list(CATALOG))
def test_formulas_tolerate_non_numeric_params(key):
    definition = CATALOG[key]
    params = {spec.name: "n/a" for spec in definition.inputs}
    assert definition.energy_fn(params) == 0
    assert math.isfinite(definition.water_fn(params))


class RecordingParams(dict):
    """Parameter map that remembers every key a formula asks for."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.requested = set()

    def get(self, key, default=None):
        self.requested.add(key)
        return super().get(key, default)

    def __getitem__(self, key):
        self.requested.add(key)
        return super().__getitem__(key)


@pytest.mark.parametrize("key", list(CATALOG))
def test_formula_params_are_declared(key):
    definition = CATALOG[key]
    declared = {spec.name for spec in definition.inputs} | set(definition.defaults)
    params = RecordingParams(definition.default_params())
    definition.energy_fn(params)
    definition.water_fn(params)
    definition.emissions_fn(params, 1.0)
    assert params.requested
    assert params.requested - {"ambient_c"} <= declared


def test_calcination_reference_case():
    params = {
        "temperature_c": 800, "duration_h": 2, "mass_kg": 1, "furnace_efficiency": 0.6,
        "specific_heat": 0.46, "standby_kw": 1.2, "overhead_factor": 1.2, "ambient_c": 25,
    }
    sensible = 1 * 0.46 * 775 / 3600
    gross = (sensible + 2.4) * 1.2
    assert calcination_energy(params) == pytest.approx(gross / 0.6)
    assert calcination_energy(params) == pytest.approx(4.998, abs=1e-3)


def _furnace(eff):
    return {
        "temperature_c": 900, "duration_h": 3, "mass_kg": 5, "furnace_efficiency": eff,
        "specific_heat": 0.46, "standby_kw": 1.2, "overhead_factor": 1.2, "ambient_c": 25,
    }


def test_calcination_efficiency_monotonic_and_clamped():
    effs = [0.2 + i * 0.05 for i in range(16)]
    energies = [calcination_energy(_furnace(e)) for e in effs]
    assert all(a >= b for a, b in zip(energies, energies[1:]))
    assert calcination_energy(_furnace(0.05)) == calcination_energy(_furnace(0.2))
    assert calcination_energy(_furnace(1.5)) == calcination_energy(_furnace(0.95))


def test_milling_efficiency_clamp():
    base = {"motor_power_kw": 5, "duration_h": 2, "load_factor": 0.8}
    low = milling_energy(dict(base, mill_efficiency=0.1))
    assert low == milling_energy(dict(base, mill_efficiency=0.3))
    assert low == pytest.approx(5 * 2 * 0.8 / 0.3)
    assert milling_energy(dict(base, mill_efficiency=0.99)) == milling_energy(dict(base, mill_efficiency=0.95))


@pytest.mark.parametrize("removed", [0, 0.5, 3, 120])
def test_drying_water_delta_non_positive(removed):
    assert drying_water({"water_removed_kg": removed}) <= 0
    assert drying_water({"water_removed_kg": removed}) == -removed


def test_drying_includes_latent_heat():
    params = {"water_removed_kg": 1, "ambient_c": 25}
    assert drying_energy(params) == pytest.approx(2257 / 3600)


def test_filtration_linear_in_pressure_and_flow():
    params = {"pressure_bar": 3, "flow_m3h": 2, "duration_h": 1.5}
    assert filtration_energy(params) == pytest.approx(PUMP_KW_PER_BAR_M3H * 3 * 2 * 1.5)
    assert filtration_energy(dict(params, pressure_bar=6)) == pytest.approx(2 * filtration_energy(params))


def test_default_emissions_uses_fallback_grid_factor():
    assert default_emissions({}, 10.0) == pytest.approx(10.0 * DEFAULT_GRID_FACTOR)
    assert default_emissions({}, 10.0, grid_factor=0.1) == pytest.approx(1.0)
    assert default_emissions({}, 10.0, grid_factor=0.0) == 0.0


def test_unknown_operation_falls_back_to_custom():
    assert get_definition("teleportation") is CATALOG[UnitOperation.CUSTOM.value]
