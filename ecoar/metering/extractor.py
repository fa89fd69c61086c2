"""Coerce loosely-typed remote values into floats."""

from __future__ import annotations

import math
from typing import Any, Sequence


def coerce_number(value: Any) -> float | None:
    """Parse a single remote value.

    Accepts ints, floats and numeric strings. Returns None for anything else,
    including bools, NaN and infinities. Never raises.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(result):
        return None
    return result


def coerce_series(raw: Any) -> list[float | None]:
    """Coerce a remote array element-wise.

    Nulls stay None (absent); any other non-numeric element becomes 0.0.
    Non-lists become an empty list.
    """
    if not isinstance(raw, (list, tuple)):
        return []
    result: list[float | None] = []
    for v in raw:
        if v is None:
            result.append(None)
            continue
        number = coerce_number(v)
        result.append(number if number is not None else 0.0)
    return result


def coerce_goal_series(raw: Any) -> list[float | None]:
    """Like coerce_series, but non-numeric elements become None so they never act as a goal."""
    if not isinstance(raw, (list, tuple)):
        return []
    return [coerce_number(v) for v in raw]


def series_value(series: Sequence[Any] | None, index: int) -> float | None:
    """Value at `index`, or None when the index is out of range or the value absent."""
    if not series or index < 0 or index >= len(series):
        return None
    return coerce_number(series[index])


def non_negative(value: Any) -> float:
    """Coerce and clamp to >= 0; absent values count as 0."""
    number = coerce_number(value)
    if number is None:
        return 0.0
    return max(0.0, number)
