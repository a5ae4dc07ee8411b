"""
Budget versus real profitability for a priced quotation.

Budgeted costs are read from the breakdown of each priced manual line and
multiplied by the line quantity.  Real costs come from recorded material
purchases, wages, petty-cash spending and transport runs, each scaled by its
allocation scope.  Tools and space rental have no real-cost records, so the
``overhead`` category reports its budget as incurred.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Sequence, Tuple

from .allocation import actual_total, allocated_amount
from .errors import InvalidInputError
from .models import ManualItem, PricedQuotation, RealCostRecord, RealExpenseRecord, RealLaborRecord
from .reconciliation import variance_percent

logger = logging.getLogger(__name__)

CATEGORIES = ("materials", "labor", "transport", "petty_cash", "overhead")


@dataclass(frozen=True)
class CategoryComparison:
    category: str
    budgeted: float
    actual: float
    variance: float
    variance_percent: float
    records: int = 0


@dataclass(frozen=True)
class ProfitabilitySummary:
    revenue: float
    budgeted_cost: float
    actual_cost: float
    budgeted_profit: float
    actual_profit: float
    categories: Tuple[CategoryComparison, ...]

    @property
    def profit_variance(self) -> float:
        return self.actual_profit - self.budgeted_profit

    def category(self, name: str) -> CategoryComparison:
        for row in self.categories:
            if row.category == name:
                return row
        raise KeyError(name)


def budgeted_costs(priced: PricedQuotation) -> Dict[str, float]:
    """Budgeted cost per category across all manual lines."""

    totals = {name: 0.0 for name in CATEGORIES}
    for line in priced.lines:
        if line.breakdown is None or not isinstance(line.item, ManualItem):
            continue
        qty = line.quantity
        bd = line.breakdown
        indirect = line.item.indirect_costs
        totals["materials"] += bd.materials_cost * qty
        totals["labor"] += (bd.labor_with_paint + bd.labor_surcharge) * qty
        totals["transport"] += indirect.transport * qty
        totals["petty_cash"] += indirect.petty_cash * qty
        totals["overhead"] += (indirect.tools + indirect.space_rental) * qty
    return totals


def _line_quantity(quantities: Dict[str, int], line_item_id: str) -> int:
    # quotation-level records (no line id) are counted once
    if not line_item_id:
        return 1
    if line_item_id not in quantities:
        raise InvalidInputError(f"Real cost refers to unknown line item {line_item_id!r}", field="line_item_id")
    return quantities[line_item_id]


def _for_quotation(records: Iterable, quotation_id: str) -> list:
    selected = []
    for record in records:
        if record.quotation_id and quotation_id and record.quotation_id != quotation_id:
            logger.warning(
                "Skipping %s real cost filed under quotation %s (expected %s)",
                type(record).__name__,
                record.quotation_id,
                quotation_id,
            )
            continue
        selected.append(record)
    return selected


def _flat_total(records: Iterable, quantities: Dict[str, int], amount_of) -> Tuple[float, int]:
    total = 0.0
    count = 0
    for record in records:
        line_qty = _line_quantity(quantities, record.line_item_id)
        total += allocated_amount(
            amount_of(record), record.allocation_scope, line_qty, record.applied_unit_count
        )
        count += 1
    return total, count


def summarize_profitability(
    priced: PricedQuotation,
    material_records: Sequence[RealExpenseRecord] = (),
    labor_records: Sequence[RealLaborRecord] = (),
    petty_records: Sequence[RealCostRecord] = (),
    transport_records: Sequence[RealCostRecord] = (),
) -> ProfitabilitySummary:
    quantities = {line.item_id: line.quantity for line in priced.lines}
    quotation_id = priced.quotation.id
    material_records = _for_quotation(material_records, quotation_id)
    labor_records = _for_quotation(labor_records, quotation_id)
    petty_records = _for_quotation(petty_records, quotation_id)
    transport_records = _for_quotation(transport_records, quotation_id)
    budget = budgeted_costs(priced)

    materials_actual = 0.0
    for record in material_records:
        materials_actual += actual_total(record, _line_quantity(quantities, record.line_item_id))

    labor_actual, labor_count = _flat_total(labor_records, quantities, lambda rec: rec.amount)
    petty_actual, petty_count = _flat_total(petty_records, quantities, lambda rec: rec.amount)
    transport_actual, transport_count = _flat_total(transport_records, quantities, lambda rec: rec.amount)

    actual = {
        "materials": materials_actual,
        "labor": labor_actual,
        "transport": transport_actual,
        "petty_cash": petty_actual,
        "overhead": budget["overhead"],
    }
    counts = {
        "materials": len(material_records),
        "labor": labor_count,
        "transport": transport_count,
        "petty_cash": petty_count,
        "overhead": 0,
    }
    categories = tuple(
        CategoryComparison(
            category=name,
            budgeted=budget[name],
            actual=actual[name],
            variance=actual[name] - budget[name],
            variance_percent=variance_percent(actual[name], budget[name]),
            records=counts[name],
        )
        for name in CATEGORIES
    )

    revenue = priced.totals.taxable_base
    budgeted_cost = sum(budget.values())
    actual_cost = sum(actual.values())
    logger.debug(
        "profitability %s: revenue=%.2f budgeted_cost=%.2f actual_cost=%.2f",
        priced.quotation.id,
        revenue,
        budgeted_cost,
        actual_cost,
    )
    return ProfitabilitySummary(
        revenue=revenue,
        budgeted_cost=budgeted_cost,
        actual_cost=actual_cost,
        budgeted_profit=revenue - budgeted_cost,
        actual_profit=revenue - actual_cost,
        categories=categories,
    )
