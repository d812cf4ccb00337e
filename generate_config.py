import os
import pandas as pd

from process_lca.config import DEFAULT_CONFIG_PATH

# KEY must match the names read in process_lca/constants.py.
PARAMS = [
    {
        "Key": "AMBIENT_C",
        "Value": 25.0,
        "Unit": "°C",
        "Section": "1. Global Settings",
        "Description": "Ambient temperature used as the baseline for sensible heat.",
    },
    {
        "Key": "DECIMALS",
        "Value": 2,
        "Unit": "Integer",
        "Section": "1. Global Settings",
        "Description": "Number of decimal places used when displaying results.",
    },
    {
        "Key": "DEFAULT_GRID_FACTOR",
        "Value": 0.45,
        "Unit": "kgCO2e/kWh",
        "Section": "2. Emission Factors",
        "Description": "Fallback grid factor when no electricity dataset is available.",
    },
    {
        "Key": "STORAGE_PATH",
        "Value": os.path.join("data", "process_lca_store.json"),
        "Unit": "Path",
        "Section": "3. Persistence",
        "Description": "JSON file holding the impact database, electricity selection and processes.",
    },
]


def generate_excel(output_file: str = DEFAULT_CONFIG_PATH):
    df = pd.DataFrame(PARAMS)[["Key", "Value", "Unit", "Section", "Description"]]
    os.makedirs(os.path.dirname(output_file), exist_ok=True)
    print(f"Generating {output_file}...")
    df.to_excel(output_file, index=False)
    print("Done.")


if __name__ == "__main__":
    generate_excel()
