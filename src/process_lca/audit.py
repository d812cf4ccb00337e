import os
import logging
from datetime import datetime
from typing import Dict, Any, Optional

from .config import PROJECT_ROOT

logger = logging.getLogger(__name__)

# Build the path to reports relative to the project root
report_directory = os.path.join(PROJECT_ROOT, 'reports')


class CalculationAudit:
    """
    Append-only text trail of step calculations (formula, inputs, result).
    Disabled until enable() is called so library use leaves no files behind.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(CalculationAudit, cls).__new__(cls)
            cls._instance.initialized = False
        return cls._instance

    def __init__(self):
        if self.initialized:
            return
        self.enabled = False
        self.log_file: Optional[str] = None
        self.initialized = True

    def enable(self, log_dir: str = report_directory) -> str:
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        os.makedirs(log_dir, exist_ok=True)
        self.log_file = os.path.join(log_dir, f"audit_{session_id}.txt")

        with open(self.log_file, "w", encoding="utf-8") as f:
            f.write("=== PROCESS LCA CALCULATION AUDIT LOG ===\n")
            f.write(f"Session: {session_id}\n")
            f.write("=========================================\n\n")
        self.enabled = True
        return self.log_file

    def disable(self):
        self.enabled = False

    def log_calculation(self, context: str, formula: str, variables: Dict[str, Any], result: float, unit: str = ""):
        """
        Log a calculation step to the audit file.

        Args:
            context: What is being calculated (e.g., "Process A / Step 1 Calcination: energy")
            formula: Text representation of equation (e.g., "Energy(kWh) * EF_grid")
            variables: Dict of actual values used
            result: The final result
            unit: Unit of the result (e.g., "kgCO2e")
        """
        if not self.enabled or not self.log_file:
            return

        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(f"[{datetime.now().strftime('%H:%M:%S')}] {context}\n")
                f.write(f"  Formula: {formula}\n")
                vars_str = ", ".join([f"{k}={v}" for k, v in variables.items()])
                f.write(f"  Inputs:  {vars_str}\n")
                f.write(f"  Result:  {result:.4f} {unit}\n")
                f.write("-" * 40 + "\n")
        except OSError as e:
            logger.error(f"Failed to write to audit log: {e}")


# Global Accessor
audit_logger = CalculationAudit()
