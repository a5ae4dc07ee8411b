from __future__ import annotations

from datetime import date

import pytest

from quotest.errors import NoMatchError
from quotest.matching import ExactNameMatcher
from quotest.models import ManualItem, MaterialUsage, Quotation, RealExpenseRecord
from quotest.reconciliation import (
    apply_real_costs,
    merge_records,
    reconcile_line_item,
    reconcile_quotation,
    variance_percent,
)

MATERIALS = (
    MaterialUsage("m-mdf", "MDF 18mm", quantity=2, unit_price=1000),
    MaterialUsage("m-hinge", "Hinge", quantity=4, unit_price=500),
)


def _expense(name, qty, price, scope=None, when=None, line="L1", quotation="Q1") -> RealExpenseRecord:
    return RealExpenseRecord(
        quotation_id=quotation,
        line_item_id=line,
        material_name=name,
        budgeted_quantity=0,
        actual_quantity=qty,
        budgeted_unit_price=0,
        actual_unit_price=price,
        purchase_date=when,
        allocation_scope=scope,
    )


def _records():
    return [
        _expense("MDF 18 mm", 1, 1200, scope="total", when=date(2024, 2, 1)),
        _expense("mdf 18 mm", 2, 1100, scope="perUnit", when=date(2024, 1, 1)),
        _expense("Paint", 1, 300),
    ]


def test_merge_sums_quantities_and_keeps_latest_price():
    merged = merge_records(_records(), 3)
    assert [group.name for group in merged] == ["MDF 18 mm", "Paint"]
    mdf = merged[0]
    assert mdf.actual_quantity == pytest.approx(7)
    assert mdf.latest_unit_price == 1200
    assert mdf.actual_total == pytest.approx(7800)
    assert mdf.record_count == 2


def test_merge_accepts_generators():
    merged = merge_records((rec for rec in _records()), 3)
    assert len(merged) == 2


def test_reconcile_line_item():
    rec = reconcile_line_item(MATERIALS, 3, _records())
    mdf, hinge = rec.per_material
    assert mdf.budgeted_total == pytest.approx(6000)
    assert mdf.actual_total == pytest.approx(7800)
    assert mdf.variance == pytest.approx(1800)
    assert mdf.variance_percent == pytest.approx(30)
    assert hinge.matched_name is None
    assert rec.unmatched == ("Hinge",)
    assert [group.name for group in rec.unbudgeted] == ["Paint"]
    assert rec.budgeted_total == pytest.approx(12000)
    assert rec.actual_total == pytest.approx(8100)
    assert rec.variance == pytest.approx(-3900)


def test_unmatched_raise_on_request():
    rec = reconcile_line_item(MATERIALS, 3, _records())
    with pytest.raises(NoMatchError) as excinfo:
        rec.raise_for_unmatched()
    assert excinfo.value.names == ["Hinge"]


def test_zero_budget_gives_zero_percent():
    assert variance_percent(500, 0) == 0


def test_strict_matcher_leaves_spacing_variants_unmatched():
    rec = reconcile_line_item(MATERIALS, 3, _records(), matcher=ExactNameMatcher())
    assert rec.unmatched == ("MDF 18mm", "Hinge")


def test_reconcile_quotation_filters_by_line_and_quotation():
    quotation = Quotation(
        id="Q1",
        items=(
            ManualItem(id="L1", name="Cabinet", quantity=3, materials=MATERIALS),
            ManualItem(id="L2", name="Shelf", materials=(MaterialUsage("m", "Paint", 1, 200),)),
        ),
    )
    records = _records() + [
        _expense("Paint", 1, 250, line="L2"),
        _expense("Paint", 5, 999, line="L2", quotation="Q-other"),
    ]
    results = reconcile_quotation(quotation, records)
    assert set(results) == {"L1", "L2"}
    assert results["L2"].actual_total == pytest.approx(250)


def test_apply_real_costs_updates_and_reprices():
    quotation = Quotation(
        id="Q1",
        items=(ManualItem(id="L1", name="Cabinet", quantity=3, materials=MATERIALS),),
        tax_percent=0,
    )
    applied = apply_real_costs(quotation, _records())
    mdf, hinge = applied.quotation.items[0].materials
    assert mdf.material_id == "m-mdf"
    assert mdf.name == "MDF 18 mm"
    assert mdf.quantity == pytest.approx(7 / 3)
    assert mdf.unit_price == 1200
    assert hinge == MATERIALS[1]
    assert applied.updated_materials == 1
    assert applied.unmatched == ("Hinge",)
    assert applied.priced.totals.subtotal == pytest.approx(14400)
    assert quotation.items[0].materials == MATERIALS


def test_repeated_budget_names_are_summed():
    materials = (
        MaterialUsage("m1", "MDF", quantity=1, unit_price=1000),
        MaterialUsage("m2", "mdf", quantity=1, unit_price=1000),
    )
    rec = reconcile_line_item(materials, 1, [_expense("MDF", 2, 1000, scope="total")])
    (row,) = rec.per_material
    assert rec.unmatched == ()
    assert row.budgeted_quantity == pytest.approx(2)
    assert row.budgeted_total == pytest.approx(2000)
    assert rec.variance == pytest.approx(0)


def test_apply_real_costs_with_repeated_budget_names():
    quotation = Quotation(
        id="Q1",
        items=(
            ManualItem(
                id="L1",
                name="Cabinet",
                materials=(
                    MaterialUsage("m1", "MDF", quantity=1, unit_price=1000),
                    MaterialUsage("m2", "MDF", quantity=1, unit_price=1000),
                ),
            ),
        ),
        tax_percent=0,
    )
    applied = apply_real_costs(quotation, [_expense("MDF", 2, 1000, scope="total")])
    first, second = applied.quotation.items[0].materials
    assert applied.unmatched == ()
    assert (first.material_id, first.quantity) == ("m1", pytest.approx(2))
    assert (second.material_id, second.quantity) == ("m2", 0.0)
    assert applied.priced.totals.subtotal == pytest.approx(2000)
