import os
import pandas as pd
import logging
from typing import Dict, Any

logger = logging.getLogger(__name__)

# The project root is two levels above this package (src/process_lca/config.py).
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, "data", "parameters_config", "project_parameters.xlsx")


def resolve_config_path() -> str:
    """Workbook path, overridable through PROCESS_LCA_CONFIG."""
    return os.environ.get("PROCESS_LCA_CONFIG") or DEFAULT_CONFIG_PATH


def load_excel_config(path: str = None) -> Dict[str, Any]:
    """
    Load configuration from Excel file.
    Expected columns: Key, Value (Unit, Section, Description are informative only)
    Returns a dictionary of Key -> Value
    """
    path = path or resolve_config_path()
    config = {}
    if not os.path.exists(path):
        logger.warning(f"Config file not found at {path}. Using defaults.")
        return config

    try:
        df = pd.read_excel(path)
        if "Key" in df.columns and "Value" in df.columns:
            for _, row in df.iterrows():
                key = str(row["Key"]).strip()
                val = row["Value"]
                if not key or pd.isna(val):
                    continue
                config[key] = val
            logger.info(f"Loaded {len(config)} parameters from {path}")
        else:
            logger.warning(f"Excel file {path} missing 'Key' or 'Value' columns.")
    except Exception as e:
        logger.error(f"Failed to load config from {path}: {e}")

    return config
