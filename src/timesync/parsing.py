"""Forgiving input coercion.

Form-style input never raises here: anything that does not parse becomes a
safe default and the caller carries on.
"""

from __future__ import annotations

import math
from typing import Any


def parse_number(value: Any, default: float = 0.0) -> float:
    """Parse an int, float or numeric string. Return `default` if invalid."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def parse_non_negative_int(value: Any) -> int:
    """Parse hours/minutes style input into a whole number >= 0.

    Fractions are floored. Missing, non-numeric and negative input gives 0.
    """
    number = parse_number(value)
    if number <= 0:
        return 0
    return math.floor(number)


def parse_minutes_to_seconds(value: Any) -> int | None:
    """Convert a minutes budget into seconds.

    Any non-zero number is floored to whole minutes with a floor of 1 minute,
    so negative input still sets the minimum budget. Empty, zero or
    non-numeric input means "no budget" (None).
    """
    number = parse_number(value)
    if number == 0:
        return None
    return max(1, math.floor(number)) * 60
