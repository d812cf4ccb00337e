import math
from typing import Any, Tuple
from ..constants import DECIMALS, KJ_PER_KWH


def f2(x: float) -> str:
    """
    Format a float with a fixed number of decimal places (DECIMALS).
    """
    return f"{x:.{DECIMALS}f}"


def to_float(value: Any) -> float:
    """
    Coerce user or persisted input to a finite float.
    None, empty strings, non-numeric text, NaN and infinities all become 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        x = float(str(value).strip().replace(",", ".")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(x):
        return 0.0
    return x


def clamp(x: float, bounds: Tuple[float, float]) -> float:
    lo, hi = bounds
    return max(lo, min(hi, x))


def round_display(x: float) -> float:
    """Round to DECIMALS places for presentation only."""
    return round(x, DECIMALS)


def sensible_heat_kwh(mass_kg: float, specific_heat_kj_kgk: float, temperature_c: float, ambient_c: float) -> float:
    """
    Heat to raise a mass from ambient to process temperature.
    Q[kJ] = m * cp * max(0, T - T_amb), returned in kWh.
    """
    delta_t = max(0.0, temperature_c - ambient_c)
    return mass_kg * specific_heat_kj_kgk * delta_t / KJ_PER_KWH
