"""
Lenient number parsing and small id/time helpers.

Form fields and stored blobs may hold strings, None or garbage where a number
is expected. These helpers turn such values into numbers without raising.
"""

import math
import time
import uuid
from typing import Any, Optional


def number_or_zero(value: Any) -> float:
    """
    Convert a value to a finite float, falling back to 0.

    Examples:
        >>> number_or_zero("12.5")
        12.5
        >>> number_or_zero("abc")
        0.0
        >>> number_or_zero(None)
        0.0
    """
    if isinstance(value, bool):
        return float(value)
    if value is None or value == "":
        return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def optional_number(value: Any) -> Optional[float]:
    """
    Convert a value to a finite float, or None when it is blank or invalid.

    Used for optional metrics where "not entered" differs from 0.
    """
    if value is None or value == "":
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def new_id() -> str:
    """Create a new random record id."""
    return str(uuid.uuid4())


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero for positive values.

    Examples:
        >>> round_half_up(12.5)
        13
        >>> round_half_up(4.49)
        4
    """
    return math.floor(value + 0.5)
