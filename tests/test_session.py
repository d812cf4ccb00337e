import pytest

from process_lca.catalog import step_label
from process_lca.constants import STORAGE_KEY_PROCESSES
from process_lca.session import LCASession
from process_lca.storage import KeyValueStore


CALCINATION = {"temperature_c": 800, "duration_h": 2, "mass_kg": 1, "furnace_efficiency": 0.6}


def test_add_step_evaluates_immediately(session):
    step = session.add_step("A", "calcination", params=CALCINATION)
    assert step.computed.energy_kwh == pytest.approx(4.998, abs=1e-3)
    # Default electricity dataset is the first record (EU-27 mix, 0.45 kg/kWh).
    assert step.computed.emissions_kg == pytest.approx(2.249, abs=1e-3)


def test_param_change_recomputes(session):
    step = session.add_step("A", "custom")
    result = session.on_param_changed(step.step_id, "energy_kwh", "12")
    assert result.energy_kwh == 12.0
    assert step.computed is result
    result = session.on_param_changed(step.step_id, "energy_kwh", "twelve")
    assert result.energy_kwh == 0.0


def test_usage_commands(session):
    step = session.add_step("B", "custom")
    session.add_material(step.step_id, "Lithium carbonate", 2)
    assert step.computed.emissions_materials_kg == pytest.approx(9.0)
    session.update_usage(step.step_id, "materials", 0, amount=4)
    assert step.computed.emissions_materials_kg == pytest.approx(18.0)
    session.add_water(step.step_id, "Tap water", 10)
    assert step.computed.water_kg == pytest.approx(10.0)
    session.remove_usage(step.step_id, "materials", 0)
    assert step.computed.emissions_materials_kg == 0.0
    with pytest.raises(ValueError):
        session.add_usage(step.step_id, "fuels", "Diesel", 1)


def test_unknown_process_and_step(session):
    with pytest.raises(KeyError):
        session.add_step("C", "custom")
    with pytest.raises(KeyError):
        session.on_param_changed("missing", "energy_kwh", 1)


def test_electricity_selection_recomputes_all_steps(session):
    a = session.add_step("A", "custom", params={"energy_kwh": 100})
    b = session.add_step("B", "custom", params={"energy_kwh": 50})
    session.select_electricity("France grid mix")
    assert a.computed.emissions_kg == pytest.approx(6.0)
    assert b.computed.emissions_kg == pytest.approx(3.0)


def test_database_edit_recomputes(session):
    step = session.add_step("A", "custom", params={"energy_kwh": 10})
    session.impact.edit_record("electricity", 0, "GWP", 1.0)
    assert step.computed.emissions_kg == pytest.approx(10.0)


def test_ambient_change(session):
    step = session.add_step("A", "calcination", params=CALCINATION)
    before = step.computed.energy_kwh
    session.set_ambient(100)
    assert step.computed.energy_kwh < before


def test_compare_and_remove(session):
    a = session.add_step("A", "custom", params={"energy_kwh": 10})
    session.add_step("B", "custom", params={"energy_kwh": 4})
    result = session.compare()
    assert result.diff.energy == pytest.approx(6.0)
    session.remove_step(a.step_id)
    assert session.compare().diff.energy == pytest.approx(-4.0)


def test_processes_persist_across_sessions(tmp_path):
    path = str(tmp_path / "store.json")
    first = LCASession.open(path, ambient_c=25)
    step = first.add_step("A", "calcination", custom_label="Kiln", params=CALCINATION)
    first.add_material(step.step_id, "Ammonia (NH3)", 1.5)
    first.add_step("B", "drying", params={"water_removed_kg": 2})

    second = LCASession.open(path, ambient_c=25)
    restored = second.process("A").steps[0]
    assert restored.step_id == step.step_id
    assert restored.custom_label == "Kiln"
    assert restored.materials[0].name == "Ammonia (NH3)"
    assert restored.computed.emissions_kg == pytest.approx(step.computed.emissions_kg)
    assert second.process("B").steps[0].computed.water_kg == pytest.approx(-2.0)


def test_malformed_saved_processes_are_ignored():
    storage = KeyValueStore(None)
    storage.set(STORAGE_KEY_PROCESSES, {"A": "oops", "B": [None, {"process_definition_key": "custom", "param_values": {"energy_kwh": 3}}]})
    session = LCASession(storage)
    session.impact.load()
    session.load_processes()
    session.recompute_all()
    assert session.process("A").steps == []
    assert session.process("B").steps[0].computed.energy_kwh == 3.0


def test_custom_label_rename_persists(tmp_path):
    path = str(tmp_path / "store.json")
    first = LCASession.open(path, ambient_c=25)
    step = first.add_step("A", "milling")
    assert step_label(step) == "Milling"
    first.set_custom_label(step.step_id, "Ball mill")
    assert step_label(step) == "Ball mill"

    second = LCASession.open(path, ambient_c=25)
    assert second.process("A").steps[0].custom_label == "Ball mill"
    second.set_custom_label(step.step_id, None)
    assert step_label(second.process("A").steps[0]) == "Milling"
    with pytest.raises(KeyError):
        second.set_custom_label("missing", "x")
