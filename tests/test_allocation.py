from __future__ import annotations

import pytest

from quotest.allocation import actual_total, allocated_amount, effective_scope, scope_multiplier
from quotest.errors import InvalidInputError
from quotest.models import RealExpenseRecord


def _record(scope=None, applied=None) -> RealExpenseRecord:
    return RealExpenseRecord(
        quotation_id="Q1",
        line_item_id="L1",
        material_name="Hinge",
        budgeted_quantity=2,
        actual_quantity=2,
        budgeted_unit_price=1000,
        actual_unit_price=1000,
        allocation_scope=scope,
        applied_unit_count=applied,
    )


def test_scopes_for_fifteen_units():
    assert actual_total(_record("perUnit"), 15) == 30_000
    assert actual_total(_record("total"), 15) == 2_000
    assert actual_total(_record("partial", 5), 15) == 10_000


def test_legacy_record_never_inflated():
    assert effective_scope(None) == "total"
    assert actual_total(_record(None), 15) == 2_000


@pytest.mark.parametrize("applied", [None, 0, 16])
def test_partial_needs_count_within_line(applied):
    with pytest.raises(InvalidInputError):
        scope_multiplier("partial", 15, applied)


def test_unknown_scope_rejected():
    with pytest.raises(InvalidInputError):
        scope_multiplier("weekly", 3)


def test_flat_amount_allocation():
    assert allocated_amount(500, "perUnit", 4) == 2000
    assert allocated_amount(500, None, 4) == 500
