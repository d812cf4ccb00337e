from process_lca.utils.input_helpers import prompt_choice, prompt_float, prompt_yes_no


def _feed(monkeypatch, answers):
    answers = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(answers))


def test_prompt_choice_by_number_name_and_default(monkeypatch):
    options = ["Calcination", "Milling", "Custom"]
    _feed(monkeypatch, ["2"])
    assert prompt_choice("Op", options, default="Custom") == "Milling"
    _feed(monkeypatch, ["calcination"])
    assert prompt_choice("Op", options, default="Custom") == "Calcination"
    _feed(monkeypatch, [""])
    assert prompt_choice("Op", options, default="Custom") == "Custom"
    _feed(monkeypatch, ["9", "x", "3"])
    assert prompt_choice("Op", options, default="Milling") == "Custom"


def test_prompt_float_blank_keeps_default_and_garbage_is_zero(monkeypatch):
    _feed(monkeypatch, [""])
    assert prompt_float("Temp", default=None) is None
    _feed(monkeypatch, ["abc"])
    assert prompt_float("Temp", default=5.0) == 0.0
    _feed(monkeypatch, ["800"])
    assert prompt_float("Temp") == 800.0


def test_prompt_yes_no(monkeypatch):
    _feed(monkeypatch, ["maybe", "y"])
    assert prompt_yes_no("Save?", default=False) is True
    _feed(monkeypatch, [""])
    assert prompt_yes_no("Save?", default=False) is False
