"""
Budget-versus-actual reconciliation of line item materials.

Budgeted figures come from a line item's material list scaled by the line
quantity.  Actual figures come from :class:`RealExpenseRecord` rows scaled by
their allocation scope.  Records for the same material (case-insensitive name)
are merged before matching: quantities add up and the unit price of the most
recent purchase wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .allocation import actual_total, allocated_quantity
from .errors import NoMatchError
from .matching import DEFAULT_MATCHER, NameMatcher, normalize_name
from .models import ManualItem, MaterialUsage, PricedQuotation, Quotation, RealExpenseRecord
from .pricing import CatalogLookup, LaborRates
from .quotation import price_quotation
from .validation import require_amount, require_unit_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergedExpense:
    """All records of one material for one line item, at whole-line scale."""

    name: str
    unit: str
    actual_quantity: float
    latest_unit_price: float
    actual_total: float
    record_count: int


@dataclass(frozen=True)
class MaterialVariance:
    material_name: str
    matched_name: Optional[str]
    match_strategy: Optional[str]
    budgeted_quantity: float
    budgeted_unit_price: float
    budgeted_total: float
    actual_quantity: float
    actual_unit_price: float
    actual_total: float
    variance: float
    variance_percent: float


@dataclass(frozen=True)
class Reconciliation:
    budgeted_total: float
    actual_total: float
    variance: float
    variance_percent: float
    per_material: Tuple[MaterialVariance, ...]
    unmatched: Tuple[str, ...] = ()
    unbudgeted: Tuple[MergedExpense, ...] = ()

    def raise_for_unmatched(self) -> None:
        if self.unmatched:
            raise NoMatchError(self.unmatched)


def variance_percent(actual: float, budgeted: float) -> float:
    if budgeted == 0:
        return 0.0
    return (actual - budgeted) / budgeted * 100


def _purchase_order(record: RealExpenseRecord) -> date:
    return record.purchase_date or date.min


def merge_records(records: Iterable[RealExpenseRecord], line_item_quantity: int) -> List[MergedExpense]:
    """Group records by normalized material name, keeping first-seen order."""

    records = list(records)
    groups: Dict[str, List[RealExpenseRecord]] = {}
    display: Dict[str, str] = {}
    for record in records:
        key = normalize_name(record.material_name)
        if key not in groups:
            groups[key] = []
            display[key] = record.material_name.strip()
    # stable sort: same-day purchases keep their recorded order
    for record in sorted(records, key=_purchase_order):
        groups[normalize_name(record.material_name)].append(record)

    merged: List[MergedExpense] = []
    for key, group in groups.items():
        latest = group[-1]
        merged.append(
            MergedExpense(
                name=display[key],
                unit=latest.unit,
                actual_quantity=sum(allocated_quantity(rec, line_item_quantity) for rec in group),
                latest_unit_price=require_amount(latest.actual_unit_price, "actual_unit_price"),
                actual_total=sum(actual_total(rec, line_item_quantity) for rec in group),
                record_count=len(group),
            )
        )
    return merged


def _claim_matches(
    names: Sequence[str],
    merged: Sequence[MergedExpense],
    matcher: NameMatcher,
) -> List[Tuple[Optional[MergedExpense], Optional[str]]]:
    """Match each name to at most one merged group; a group is used only once."""

    available = list(range(len(merged)))
    results: List[Tuple[Optional[MergedExpense], Optional[str]]] = []
    for name in names:
        pool = [merged[idx].name for idx in available]
        found = matcher.match(name, pool)
        if found is None:
            results.append((None, None))
            continue
        group_idx = available.pop(found.index)
        results.append((merged[group_idx], found.strategy))
    return results


def _group_budgeted(materials: Sequence[MaterialUsage]) -> List[Tuple[str, List[int]]]:
    """Positions of budgeted materials sharing a normalized name, in first-seen order."""

    groups: Dict[str, Tuple[str, List[int]]] = {}
    for idx, usage in enumerate(materials):
        key = normalize_name(usage.name)
        if key not in groups:
            groups[key] = (usage.name, [])
        groups[key][1].append(idx)
    return list(groups.values())


def reconcile_line_item(
    budgeted_materials: Sequence[MaterialUsage],
    line_item_quantity: int,
    records: Sequence[RealExpenseRecord],
    matcher: Optional[NameMatcher] = None,
) -> Reconciliation:
    """Compare a line item's budgeted materials against its recorded purchases.

    Budgeted materials listed more than once under the same name are summed
    into one row before matching.
    """

    matcher = matcher or DEFAULT_MATCHER
    line_qty = require_unit_count(line_item_quantity, "line_item_quantity")
    merged = merge_records(records, line_qty)
    budgeted = _group_budgeted(budgeted_materials)
    claims = _claim_matches([name for name, _ in budgeted], merged, matcher)

    per_material: List[MaterialVariance] = []
    unmatched: List[str] = []
    used: set = set()
    for (name, positions), (group, strategy) in zip(budgeted, claims):
        usages = [budgeted_materials[idx] for idx in positions]
        quantities = [require_amount(usage.quantity, "quantity") for usage in usages]
        prices = [require_amount(usage.unit_price, "unit_price") for usage in usages]
        budget_qty = sum(quantities) * line_qty
        budget_total = sum(qty * price for qty, price in zip(quantities, prices)) * line_qty
        budget_price = budget_total / budget_qty if budget_qty else prices[0]
        if group is None:
            unmatched.append(name)
            actual_qty = actual_price = actual_cost = 0.0
        else:
            used.add(id(group))
            actual_qty = group.actual_quantity
            actual_price = group.latest_unit_price
            actual_cost = group.actual_total
        per_material.append(
            MaterialVariance(
                material_name=name,
                matched_name=group.name if group else None,
                match_strategy=strategy,
                budgeted_quantity=budget_qty,
                budgeted_unit_price=budget_price,
                budgeted_total=budget_total,
                actual_quantity=actual_qty,
                actual_unit_price=actual_price,
                actual_total=actual_cost,
                variance=actual_cost - budget_total,
                variance_percent=variance_percent(actual_cost, budget_total),
            )
        )

    unbudgeted = tuple(group for group in merged if id(group) not in used)
    budgeted_total = sum(row.budgeted_total for row in per_material)
    actual_sum = sum(group.actual_total for group in merged)
    if unmatched:
        logger.info("unmatched budgeted materials: %s", ", ".join(unmatched))
    return Reconciliation(
        budgeted_total=budgeted_total,
        actual_total=actual_sum,
        variance=actual_sum - budgeted_total,
        variance_percent=variance_percent(actual_sum, budgeted_total),
        per_material=tuple(per_material),
        unmatched=tuple(unmatched),
        unbudgeted=unbudgeted,
    )

def records_for_line(
    records: Iterable[RealExpenseRecord],
    quotation_id: str,
    line_item_id: str,
) -> List[RealExpenseRecord]:
    selected = []
    for record in records:
        if record.line_item_id != line_item_id:
            continue
        if record.quotation_id and quotation_id and record.quotation_id != quotation_id:
            logger.warning(
                "Skipping expense for %s filed under quotation %s (expected %s)",
                record.material_name,
                record.quotation_id,
                quotation_id,
            )
            continue
        selected.append(record)
    return selected


def reconcile_quotation(
    quotation: Quotation,
    records: Sequence[RealExpenseRecord],
    matcher: Optional[NameMatcher] = None,
) -> Dict[str, Reconciliation]:
    """Reconcile every manual line item of ``quotation``, keyed by item id."""

    results: Dict[str, Reconciliation] = {}
    for item in quotation.items:
        if not isinstance(item, ManualItem):
            continue
        line_records = records_for_line(records, quotation.id, item.id)
        results[item.id] = reconcile_line_item(item.materials, item.quantity, line_records, matcher)
    return results


@dataclass(frozen=True)
class AppliedCosts:
    quotation: Quotation
    priced: PricedQuotation
    updated_materials: int
    unmatched: Tuple[str, ...]

    def raise_for_unmatched(self) -> None:
        if self.unmatched:
            raise NoMatchError(self.unmatched)


def apply_real_costs(
    quotation: Quotation,
    records: Sequence[RealExpenseRecord],
    matcher: Optional[NameMatcher] = None,
    catalog: Optional[CatalogLookup] = None,
    rates: Optional[LaborRates] = None,
) -> AppliedCosts:
    """Overwrite budgeted material figures with recorded real ones and reprice.

    Matched materials take the per-unit real quantity (scoped total divided by
    the line quantity) and the latest real unit price.  Materials without a
    matching record keep their budgeted values and are reported by name.
    """

    matcher = matcher or DEFAULT_MATCHER
    items = []
    updated = 0
    unmatched: List[str] = []
    for item in quotation.items:
        if not isinstance(item, ManualItem) or not item.materials:
            items.append(item)
            continue
        line_records = records_for_line(records, quotation.id, item.id)
        if not line_records:
            items.append(item)
            continue
        line_qty = require_unit_count(item.quantity)
        merged = merge_records(line_records, line_qty)
        budgeted = _group_budgeted(item.materials)
        claims = _claim_matches([name for name, _ in budgeted], merged, matcher)
        materials = list(item.materials)
        for (name, positions), (group, strategy) in zip(budgeted, claims):
            if group is None:
                if name not in unmatched:
                    unmatched.append(name)
                continue
            per_unit = group.actual_quantity / line_qty
            logger.debug(
                "%s: %s -> %s (%s) qty %.4f -> %.4f",
                item.id,
                name,
                group.name,
                strategy,
                sum(materials[idx].quantity for idx in positions),
                per_unit,
            )
            # the real quantity lands on the first entry; repeats of the same name drop to zero
            for rank, idx in enumerate(positions):
                materials[idx] = replace(
                    materials[idx],
                    name=group.name,
                    quantity=per_unit if rank == 0 else 0.0,
                    unit_price=group.latest_unit_price,
                    unit=group.unit,
                )
                updated += 1
        items.append(replace(item, materials=tuple(materials)))

    new_quotation = replace(quotation, items=tuple(items))
    priced = price_quotation(new_quotation, catalog=catalog, rates=rates)
    logger.info(
        "Applied real costs to quotation %s: %s materials updated, %s unmatched",
        quotation.id,
        updated,
        len(unmatched),
    )
    return AppliedCosts(
        quotation=new_quotation,
        priced=priced,
        updated_materials=updated,
        unmatched=tuple(unmatched),
    )
