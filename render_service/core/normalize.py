"""
Numeric Normalizer
==================

Coerces untrusted request fields into safe positive numbers. These functions
never raise: anything unusable yields the caller's fallback.
"""

import math
from typing import Any, Optional


def _parse(value: Any) -> Optional[float]:
    # bool is an int subclass; "true" must not become a scale factor of 1
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def normalize_number(value: Any, fallback: float) -> float:
    """
    Parse ``value`` as a positive finite number.

    Args:
        value: Raw request field
        fallback: Value returned when ``value`` is unusable

    Returns:
        The parsed number, or ``fallback`` when parsing fails or the result
        is non-finite or not strictly positive
    """
    parsed = _parse(value)
    if parsed is None or not math.isfinite(parsed) or parsed <= 0:
        return fallback
    return parsed


def normalize_int(value: Any, fallback: int) -> int:
    """Like :func:`normalize_number`, truncated to an integer."""
    parsed = normalize_number(value, 0.0)
    truncated = int(parsed)
    if truncated <= 0:
        return fallback
    return truncated


def normalize_flag(value: Any) -> bool:
    """Strict boolean check: only the literal ``True`` enables a flag."""
    return value is True
