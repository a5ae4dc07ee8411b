"""Fail-fast checks shared by the calculators."""

from __future__ import annotations

import math

from .errors import InvalidInputError


def require_amount(value: float | None, field: str) -> float:
    """Return ``value`` as a float, treating ``None`` as zero; reject negatives."""

    if value is None:
        return 0.0
    amount = float(value)
    if math.isnan(amount) or amount < 0:
        raise InvalidInputError(f"{field} must be a non-negative amount, got {value!r}", field=field)
    return amount


def require_percent(value: float | None, field: str) -> float:
    if value is None:
        return 0.0
    pct = float(value)
    if math.isnan(pct) or pct < 0 or pct > 100:
        raise InvalidInputError(f"{field} must be between 0 and 100, got {value!r}", field=field)
    return pct


def require_unit_count(value: object, field: str = "quantity") -> int:
    """Quantities of physical units are whole numbers of at least one."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{field} must be an integer, got {value!r}", field=field)
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidInputError(f"{field} must be an integer, got {value!r}", field=field)
        value = int(value)
    if value < 1:
        raise InvalidInputError(f"{field} must be at least 1, got {value!r}", field=field)
    return int(value)


def clamp_percent(value: object, default: float = 0.0) -> float:
    """Clamp a user-entered percentage into [0, 100]; used at the input boundary only."""

    if value is None:
        return default
    text = str(value).replace("%", "").replace(",", ".").strip()
    if not text:
        return default
    try:
        pct = float(text)
    except ValueError as exc:
        raise InvalidInputError(f"Not a percentage: {value!r}") from exc
    if math.isnan(pct):
        return default
    return min(100.0, max(0.0, pct))
