"""Value scaling for chart axes, tooltips and KPI labels.

A whole series shares one display unit (units, thousands or millions). The
formatter factories compute that unit once and close over it, so every tick
on an axis uses the same suffix.
"""

import math
from collections.abc import Callable, Iterable

from finpyme.utils.numbers import format_es_ar, to_float

SCALES = ("units", "thousands", "millions")

_SCALE_FACTORS = {
    "units": (1, ""),
    "thousands": (1_000, "K"),
    "millions": (1_000_000, "M"),
}

_SCALE_LABELS = {
    "units": "en unidades",
    "thousands": "en miles (K)",
    "millions": "en millones (M)",
}


def determine_scale(values: Iterable[float]) -> str:
    """Pick a unit from the largest absolute value; empty input means units."""
    magnitudes = [abs(v) for v in (to_float(x) for x in values) if not math.isnan(v)]
    peak = max(magnitudes, default=0.0)

    if peak >= 1_000_000:
        return "millions"
    if peak >= 1_000:
        return "thousands"
    return "units"


def format_value_with_scale(
    value: float,
    scale: str,
    currency: bool = True,
    decimals: int = 1,
) -> str:
    """Format `value` in `scale`: 1_500 in thousands → `$ 1,5K`; -1_500 → `-$ 1,5K`."""
    number = to_float(value)
    if not math.isfinite(number):
        return "0"

    factor, suffix = _SCALE_FACTORS.get(scale, _SCALE_FACTORS["units"])
    final_decimals = 0 if factor == 1 else max(1, decimals)
    body = format_es_ar(abs(number) / factor, final_decimals)

    sign = "-" if number < 0 else ""
    if currency:
        return f"{sign}$ {body}{suffix}"
    return f"{sign}{body}{suffix}"


def smart_format_value(
    value: float,
    all_values: Iterable[float] = (),
    scale: str = "auto",
    currency: bool = True,
    decimals: int = 1,
) -> str:
    values = list(all_values)
    if scale == "auto":
        scale = determine_scale(values or [value])
    return format_value_with_scale(value, scale, currency=currency, decimals=decimals)


def create_tick_formatter(
    all_values: Iterable[float],
    scale: str = "auto",
    currency: bool = False,
) -> Callable[[object], str]:
    """Axis tick formatter; non-numeric ticks render as an empty string."""
    values = list(all_values)
    fixed_scale = determine_scale(values) if scale == "auto" and values else scale

    def format_tick(tick) -> str:
        number = to_float(tick)
        if math.isnan(number):
            return ""
        effective = fixed_scale
        if effective == "auto":
            # No series to derive the unit from: fall back to the tick itself
            effective = determine_scale([number])
        return format_value_with_scale(
            number,
            effective,
            currency=currency,
            decimals=0 if effective == "units" else 1,
        )

    return format_tick


def create_tooltip_formatter(
    all_values: Iterable[float],
    scale: str = "auto",
    currency: bool = True,
    decimals: int = 1,
) -> Callable[[object], str]:
    fixed_scale = determine_scale(all_values) if scale == "auto" else scale

    def format_tooltip(value) -> str:
        number = to_float(value)
        if math.isnan(number):
            return ""
        return format_value_with_scale(number, fixed_scale, currency=currency, decimals=decimals)

    return format_tooltip


def scale_label(scale: str) -> str:
    return _SCALE_LABELS.get(scale, _SCALE_LABELS["units"])


def scaled_series(values: Iterable[float], currency: bool = True) -> dict:
    """Bundle a series with its shared scale, label and formatted values."""
    numbers = [to_float(v) for v in values]
    scale = determine_scale(numbers)
    fmt = create_tooltip_formatter(numbers, scale=scale, currency=currency)
    return {
        "scale": scale,
        "scale_label": scale_label(scale),
        "values": [0.0 if math.isnan(n) else n for n in numbers],
        "formatted": [fmt(n) or "0" for n in numbers],
    }
