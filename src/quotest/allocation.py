"""
Allocation of recorded real costs across the units of a line item.

A single purchase may cover one physical unit (``perUnit``), a stated number
of units (``partial``) or the whole run (``total``).  Records created before
the scope existed carry no scope and are treated as ``total`` so historical
figures are never multiplied up.
"""

from __future__ import annotations

from typing import Optional

from .errors import InvalidInputError
from .models import (
    ALLOCATION_SCOPES,
    SCOPE_PARTIAL,
    SCOPE_PER_UNIT,
    SCOPE_TOTAL,
    RealExpenseRecord,
)
from .validation import require_amount, require_unit_count

LEGACY_SCOPE = SCOPE_TOTAL


def effective_scope(scope: Optional[str]) -> str:
    if scope is None or scope == "":
        return LEGACY_SCOPE
    if scope not in ALLOCATION_SCOPES:
        raise InvalidInputError(f"Unknown allocation scope: {scope!r}", field="allocation_scope")
    return scope


def scope_multiplier(
    scope: Optional[str],
    line_item_quantity: int,
    applied_unit_count: Optional[int] = None,
) -> int:
    """Number of physical units one recorded amount stands for."""

    line_qty = require_unit_count(line_item_quantity, "line_item_quantity")
    resolved = effective_scope(scope)
    if resolved == SCOPE_PER_UNIT:
        return line_qty
    if resolved == SCOPE_PARTIAL:
        if applied_unit_count is None:
            raise InvalidInputError(
                "Partial allocation requires applied_unit_count", field="applied_unit_count"
            )
        count = require_unit_count(applied_unit_count, "applied_unit_count")
        if count > line_qty:
            raise InvalidInputError(
                f"applied_unit_count {count} exceeds the line item quantity {line_qty}",
                field="applied_unit_count",
            )
        return count
    return 1


def record_multiplier(record: RealExpenseRecord, line_item_quantity: int) -> int:
    return scope_multiplier(record.allocation_scope, line_item_quantity, record.applied_unit_count)


def allocated_quantity(record: RealExpenseRecord, line_item_quantity: int) -> float:
    """Actual quantity of the record expressed at whole-line-item scale."""

    qty = require_amount(record.actual_quantity, "actual_quantity")
    return qty * record_multiplier(record, line_item_quantity)


def actual_total(record: RealExpenseRecord, line_item_quantity: int) -> float:
    """Real cost of ``record`` across the whole line item."""

    qty = require_amount(record.actual_quantity, "actual_quantity")
    price = require_amount(record.actual_unit_price, "actual_unit_price")
    return qty * price * record_multiplier(record, line_item_quantity)


def allocated_amount(
    amount: float,
    scope: Optional[str],
    line_item_quantity: int,
    applied_unit_count: Optional[int] = None,
) -> float:
    """Scale a flat recorded amount (labor, transport, petty cash) by its scope."""

    value = require_amount(amount, "amount")
    return value * scope_multiplier(scope, line_item_quantity, applied_unit_count)
