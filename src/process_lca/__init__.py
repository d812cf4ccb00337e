from .models import (
    ImpactRecord,
    ImpactDatabase,
    ParamSpec,
    ProcessDefinition,
    MaterialUsage,
    WaterUsage,
    Step,
    StepResult,
    Process,
    ProcessTotals,
    ComparisonResult,
)
from .catalog import CATALOG, UnitOperation, get_definition
from .impact_db import ImpactFactorStore, default_database
from .evaluator import evaluate_step
from .comparison import totals, compare
from .session import LCASession

__all__ = [
    "ImpactRecord",
    "ImpactDatabase",
    "ParamSpec",
    "ProcessDefinition",
    "MaterialUsage",
    "WaterUsage",
    "Step",
    "StepResult",
    "Process",
    "ProcessTotals",
    "ComparisonResult",
    "CATALOG",
    "UnitOperation",
    "get_definition",
    "ImpactFactorStore",
    "default_database",
    "evaluate_step",
    "totals",
    "compare",
    "LCASession",
]
