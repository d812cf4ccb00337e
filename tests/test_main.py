from process_lca.main import edit_process


def _feed(monkeypatch, answers):
    answers = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(answers))


def test_edit_step_renames_and_keeps_values(monkeypatch, session):
    step = session.add_step("A", "custom", params={"energy_kwh": 10})
    # Edit step -> last step -> new name -> keep energy -> skip water -> no usages -> back
    _feed(monkeypatch, ["2", "", "Kiln 2", "", "", "", ""])
    edit_process(session, "A")
    assert step.custom_label == "Kiln 2"
    assert step.computed.energy_kwh == 10.0


def test_edit_step_blank_name_keeps_label(monkeypatch, session):
    step = session.add_step("B", "custom", custom_label="Oven")
    _feed(monkeypatch, ["2", "", "", "", "", "", ""])
    edit_process(session, "B")
    assert step.custom_label == "Oven"
