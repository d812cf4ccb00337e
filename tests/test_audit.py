from process_lca.audit import audit_logger
from process_lca.session import LCASession


def test_audit_trail_records_step_evaluations(tmp_path):
    log_file = audit_logger.enable(str(tmp_path))
    session = LCASession.open(path=None, ambient_c=25)
    session.add_step("A", "custom", custom_label="Press", params={"energy_kwh": 10})
    audit_logger.disable()

    text = open(log_file, encoding="utf-8").read()
    assert "Process A / Step 1 Press: emissions" in text
    assert "Energy_kWh=10.0" in text
    assert "Result:  4.5000 kgCO2e" in text


def test_audit_disabled_writes_nothing(tmp_path):
    audit_logger.disable()
    session = LCASession.open(path=None, ambient_c=25)
    session.add_step("A", "custom", params={"energy_kwh": 1})
    assert list(tmp_path.iterdir()) == []
