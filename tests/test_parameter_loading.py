import pandas as pd

from process_lca.config import load_excel_config


def test_param_loading(tmp_path):
    path = tmp_path / "params.xlsx"
    pd.DataFrame([
        {"Key": "AMBIENT_C", "Value": 20.0, "Unit": "°C"},
        {"Key": "DECIMALS", "Value": 3, "Unit": "Integer"},
    ]).to_excel(path, index=False)

    config = load_excel_config(str(path))
    assert float(config["AMBIENT_C"]) == 20.0
    assert int(config["DECIMALS"]) == 3


def test_missing_config_returns_empty(tmp_path):
    assert load_excel_config(str(tmp_path / "nope.xlsx")) == {}


def test_wrong_columns_returns_empty(tmp_path):
    path = tmp_path / "params.xlsx"
    pd.DataFrame([{"Name": "AMBIENT_C", "Amount": 20}]).to_excel(path, index=False)
    assert load_excel_config(str(path)) == {}


def test_env_override(tmp_path, monkeypatch):
    path = tmp_path / "env.xlsx"
    pd.DataFrame([{"Key": "DEFAULT_GRID_FACTOR", "Value": 0.3}]).to_excel(path, index=False)
    monkeypatch.setenv("PROCESS_LCA_CONFIG", str(path))
    assert load_excel_config()["DEFAULT_GRID_FACTOR"] == 0.3
