import logging
from typing import List, Optional

import colorama
from colorama import Fore, Style, Back

from ..models import ComparisonResult, ImpactRecord, Step, StepCallout
from ..catalog import get_definition, step_label
from .calculations import f2, to_float

colorama.init(autoreset=True)

logger = logging.getLogger(__name__)

# Style Constants
C_HEADER = Fore.CYAN + Style.BRIGHT
C_PROMPT = Fore.YELLOW
C_CHOICE = Fore.MAGENTA
C_ERROR = Fore.RED
C_SUCCESS = Fore.GREEN
C_RESET = Style.RESET_ALL


def style_prompt(prompt_text: str) -> str:
    """Helper to wrap input prompt in color."""
    return f"{C_PROMPT}{prompt_text}{C_RESET}"


def print_header(text: str):
    """Print a styled header."""
    print(f"\n{C_HEADER}{'='*60}")
    print(f"{text.center(60)}")
    print(f"{'='*60}{C_RESET}")


def prompt_choice(label: str, options: List[str], default: str) -> str:
    """
    Prompt user to pick one value from a list of options; returns the chosen option.
    Supports selecting by index (1-based) or typing the name.
    """
    display_parts = []
    for idx, opt in enumerate(options, 1):
        display_parts.append(f"[{C_SUCCESS}{idx}{C_PROMPT}] {C_CHOICE}{opt}{C_PROMPT}")
    opts_str = " / ".join(display_parts)

    while True:
        print(f"\n{C_PROMPT}{label} options:{C_RESET} {opts_str}")
        s = input(style_prompt(f"Select option (name or number) [default={default}]: ")).strip().lower()

        if not s:
            return default
        if s.isdigit():
            idx = int(s)
            if 1 <= idx <= len(options):
                return options[idx-1]
        for opt in options:
            if s == opt.lower():
                return opt

        logger.warning(f"Invalid choice '{s}'. Please enter a number 1-{len(options)} or the option name.")


def prompt_yes_no(label: str, default: bool) -> bool:
    """
    Prompt user for yes/no answer, returning True/False.
    """
    d = "y" if default else "n"
    opts = f"{C_CHOICE}y{C_PROMPT}/{C_CHOICE}n{C_PROMPT}"
    while True:
        s = input(style_prompt(f"{label} [{opts}] (default={d}): ")).strip().lower()
        if not s:
            return default
        if s in ("y", "yes"):
            return True
        if s in ("n", "no"):
            return False
        logger.warning("Please answer y or n.")


def prompt_float(label: str, default: Optional[float] = None) -> Optional[float]:
    """
    Numeric prompt. Blank keeps the default (which may be None, meaning
    "use the catalog default"); anything non-numeric reads as 0.
    """
    shown = "" if default is None else f" [default={default}]"
    s = input(style_prompt(f"{label}{shown}: ")).strip()
    if not s:
        return default
    return to_float(s)


def prompt_text(label: str, default: str = "") -> str:
    s = input(style_prompt(f"{label} [default={default or '-'}]: ")).strip()
    return s or default


# ============================================================================
# OVERVIEWS
# ============================================================================

def print_step_overview(step: Step, index: int):
    c = step.computed
    definition = get_definition(step.process_definition_key)
    print(f"\n{C_HEADER}Step {index + 1}: {step_label(step)}{C_RESET} ({definition.label})")
    for key, value in step.param_values.items():
        print(f"  {key:<22}: {value}")
    for m in step.materials:
        print(f"  material  {m.name:<30}: {m.amount} kg")
    for w in step.waters:
        print(f"  water     {w.name:<30}: {w.amount} L")
    r = c.rounded()
    print(f"  Energy    : {f2(r['energy_kwh'])} kWh")
    print(f"  Water     : {f2(r['water_kg'])} kg")
    print(f"  Emissions : {f2(r['emissions_kg'])} kg CO2e "
          f"(energy {f2(r['emissions_energy_kg'])} / materials {f2(r['emissions_materials_kg'])}"
          f" / water {f2(r['emissions_water_kg'])})")
    for message in c.warnings:
        print(f"  {C_ERROR}! {message}{C_RESET}")


def print_impact_records(category: str, records: List[ImpactRecord]):
    print(f"\n{C_HEADER}{category.capitalize()}{C_RESET}")
    print(f"  {'#':>3}  {'Name':<32} {'GWP':>10} {'ADP':>10} {'WaterUse':>10} {'AP':>10} {'FETP':>10}")
    for i, r in enumerate(records):
        print(f"  {i:>3}  {r.name:<32} {r.GWP:>10.4g} {r.ADP:>10.4g} {r.WaterUse:>10.4g} {r.AP:>10.4g} {r.FETP:>10.4g}")


def _callout(label: str, callout: Optional[StepCallout], unit: str):
    if callout is None:
        return
    print(f"  Highest {label:<10}: Process {callout.process_name} / step {callout.step_index + 1} "
          f"({callout.label}) {f2(callout.value)} {unit}")


def print_comparison_overview(result: ComparisonResult):
    """
    Totals side by side with the signed difference (A - B).
    """
    print(f"\n{Back.BLACK}{C_HEADER}{'='*60}")
    print("   COMPARISON RESULT: PROCESS A vs PROCESS B")
    print(f"{'='*60}{Style.RESET_ALL}")

    a, b, d = result.totals_a.rounded(), result.totals_b.rounded(), result.diff.rounded()
    print(f"\n  {'Metric':<22}{'A':>12}{'B':>12}{'A - B':>12}")
    for key, label in (("energy", "Energy (kWh)"), ("water", "Water (kg)"), ("emissions", "Emissions (kgCO2e)")):
        colour = C_ERROR if d[key] > 0 else C_SUCCESS
        print(f"  {label:<22}{f2(a[key]):>12}{f2(b[key]):>12}{colour}{f2(d[key]):>12}{C_RESET}")

    print(f"\n{C_HEADER}Emission sources (kg CO2e):{C_RESET}")
    for key, label in (("emissions_energy", "Energy"), ("emissions_materials", "Materials"), ("emissions_water", "Water")):
        print(f"  {label:<22}{f2(a[key]):>12}{f2(b[key]):>12}{f2(d[key]):>12}")

    print(f"\n{C_HEADER}Most impactful steps:{C_RESET}")
    _callout("energy", result.max_energy, "kWh")
    _callout("water", result.max_water, "kg")
    _callout("emissions", result.max_emissions, "kg CO2e")
    print(f"{'='*60}\n")
