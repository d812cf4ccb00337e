import logging
import os
from datetime import datetime
from typing import List

import pandas as pd

from .comparison import emissions_decomposition, step_breakdown, totals_table
from .constants import DECIMALS
from .models import ComparisonResult, StepCallout
from .utils.calculations import f2

logger = logging.getLogger(__name__)


def build_comparison_table(result: ComparisonResult) -> pd.DataFrame:
    """Totals per metric for A and B plus the signed difference, rounded for display."""
    df = totals_table(result)
    df["Change vs B (%)"] = [
        (d / b * 100.0) if b else float("nan")
        for d, b in zip(df["Difference (A-B)"], df["B"])
    ]
    return df.round(DECIMALS)


def build_step_table(result: ComparisonResult) -> pd.DataFrame:
    df = step_breakdown(result)
    numeric = df.select_dtypes("number").columns.drop("Step", errors="ignore")
    df[numeric] = df[numeric].round(DECIMALS)
    return df


def _callout_lines(result: ComparisonResult) -> List[str]:
    lines = []
    for metric, unit, callout in (
        ("energy", "kWh", result.max_energy),
        ("water", "kg", result.max_water),
        ("emissions", "kgCO2e", result.max_emissions),
    ):
        if isinstance(callout, StepCallout):
            lines.append(
                f"- Highest {metric}: Process {callout.process_name}, step {callout.step_index + 1} "
                f"({callout.label}) with {f2(callout.value)} {unit}"
            )
    return lines


def save_excel_report(result: ComparisonResult, path: str) -> str:
    """Totals, steps and emissions sources on separate sheets."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with pd.ExcelWriter(path) as writer:
        build_comparison_table(result).to_excel(writer, sheet_name="Totals")
        build_step_table(result).to_excel(writer, sheet_name="Steps", index=False)
        emissions_decomposition(result).round(DECIMALS).to_excel(writer, sheet_name="Emission sources")
    logger.info(f"Saved Excel report to {path}")
    return path


def _markdown_table(df: pd.DataFrame, index: bool = True) -> str:
    if index:
        df = df.reset_index().rename(columns={"index": ""})
    header = "| " + " | ".join(str(c) for c in df.columns) + " |"
    rule = "|" + "|".join("---" for _ in df.columns) + "|"
    rows = ["| " + " | ".join(str(v) for v in row) + " |" for row in df.itertuples(index=False)]
    return "\n".join([header, rule, *rows])


def save_markdown_report(result: ComparisonResult, path: str) -> str:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    parts = [
        "# Process comparison",
        f"Generated {datetime.now().strftime('%Y-%m-%d %H:%M')}",
        "## Totals",
        _markdown_table(build_comparison_table(result)),
        "## Most impactful steps",
        "\n".join(_callout_lines(result)) or "No steps defined.",
        "## Steps",
        _markdown_table(build_step_table(result), index=False),
        "## Emission sources (kgCO2e)",
        _markdown_table(emissions_decomposition(result).round(DECIMALS)),
    ]
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n\n".join(parts) + "\n")
    logger.info(f"Saved Markdown report to {path}")
    return path
