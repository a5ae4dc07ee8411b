from __future__ import annotations

import pytest

from quotest.errors import InvalidInputError
from quotest.models import (
    IndirectCosts,
    ManualItem,
    MaterialUsage,
    Quotation,
    RealCostRecord,
    RealExpenseRecord,
    RealLaborRecord,
)
from quotest.profitability import budgeted_costs, summarize_profitability
from quotest.quotation import price_quotation


@pytest.fixture
def priced():
    item = ManualItem(
        id="L1",
        name="Desk",
        quantity=2,
        materials=(MaterialUsage("m", "Oak board", quantity=1, unit_price=1000),),
        labor_mode="fixedAmount",
        fixed_labor_amount=2000,
        indirect_costs=IndirectCosts(transport=100, petty_cash=50, tools=30, space_rental=20),
        profit_margin_percent=50,
    )
    return price_quotation(Quotation(id="Q1", items=(item,)))


def test_budgeted_costs_by_category(priced):
    budget = budgeted_costs(priced)
    assert budget == {
        "materials": 2000,
        "labor": 4000,
        "transport": 200,
        "petty_cash": 100,
        "overhead": 100,
    }


def test_summary_against_real_costs(priced):
    summary = summarize_profitability(
        priced,
        material_records=[
            RealExpenseRecord("Q1", "L1", "Oak board", 1, 1, 1000, 1100, allocation_scope="perUnit")
        ],
        labor_records=[
            RealLaborRecord("Q1", "L1", hours_worked=10, hourly_pay=250, allocation_scope="total"),
            RealLaborRecord("Q1", "L1", manual_amount=1000, allocation_scope="perUnit"),
        ],
        petty_records=[RealCostRecord("Q1", "L1", "glue", 80)],
        transport_records=[RealCostRecord("Q1", "L1", "van", 60, allocation_scope="perUnit")],
    )
    assert summary.revenue == pytest.approx(7600)
    assert summary.budgeted_profit == pytest.approx(1200)
    assert summary.category("materials").actual == pytest.approx(2200)
    assert summary.category("labor").actual == pytest.approx(4500)
    assert summary.category("labor").records == 2
    assert summary.category("transport").actual == pytest.approx(120)
    assert summary.category("overhead").actual == summary.category("overhead").budgeted
    assert summary.actual_cost == pytest.approx(7000)
    assert summary.actual_profit == pytest.approx(600)
    assert summary.profit_variance == pytest.approx(-600)


def test_quotation_level_records_count_once(priced):
    summary = summarize_profitability(priced, transport_records=[RealCostRecord("Q1", "", "delivery", 300)])
    assert summary.category("transport").actual == pytest.approx(300)


def test_unknown_line_rejected(priced):
    with pytest.raises(InvalidInputError):
        summarize_profitability(priced, petty_records=[RealCostRecord("Q1", "L9", "tape", 10)])


def test_records_from_other_quotations_are_skipped(priced):
    summary = summarize_profitability(
        priced,
        material_records=[
            RealExpenseRecord("Q1", "L1", "Oak board", 1, 1, 1000, 1000, allocation_scope="total"),
            RealExpenseRecord("Q2", "L1", "Oak board", 9, 9, 1000, 1000, allocation_scope="total"),
        ],
        petty_records=[RealCostRecord("Q2", "L7", "tape", 10)],
    )
    assert summary.category("materials").actual == pytest.approx(1000)
    assert summary.category("materials").records == 1
    assert summary.category("petty_cash").actual == 0
