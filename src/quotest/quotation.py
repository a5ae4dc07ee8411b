"""
Quotation-level totals and value-style editing operations.

Every editing helper returns a new :class:`Quotation`; totals are never
cached on the quotation itself.  :func:`price_quotation` reprices every line
from scratch and aggregates, so repeated calls on the same input always agree.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import Iterable, Optional, Sequence, Union

from dotenv import load_dotenv

from .errors import InvalidInputError
from .models import LineItem, PricedLine, PricedQuotation, Quotation, QuotationTotals
from .pricing import CatalogLookup, LaborRates, price_item
from .validation import require_amount, require_percent

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_TAX_PERCENT = float(os.getenv("DEFAULT_TAX_PERCENT", "19"))


def _line_total(line: Union[PricedLine, float]) -> float:
    if isinstance(line, PricedLine):
        return require_amount(line.line_total, f"line_total[{line.item_id}]")
    return require_amount(line, "line_total")


def aggregate_quotation(
    lines: Iterable[Union[PricedLine, float]],
    discount_percent: float = 0.0,
    tax_percent: float = DEFAULT_TAX_PERCENT,
) -> QuotationTotals:
    """Aggregate priced lines into subtotal, discount, tax and total.

    ``lines`` may hold :class:`PricedLine` values or bare line totals.  The
    discount is taken off the subtotal before tax is applied.
    """

    discount_pct = require_percent(discount_percent, "discount_percent")
    tax_pct = require_percent(tax_percent, "tax_percent")

    subtotal = sum(_line_total(line) for line in lines)
    discount_amount = subtotal * (discount_pct / 100)
    taxable_base = subtotal - discount_amount
    tax_amount = taxable_base * (tax_pct / 100)
    total = taxable_base + tax_amount
    return QuotationTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        taxable_base=taxable_base,
        tax_amount=tax_amount,
        total=total,
    )


def price_quotation(
    quotation: Quotation,
    catalog: Optional[CatalogLookup] = None,
    rates: Optional[LaborRates] = None,
) -> PricedQuotation:
    """Reprice every line of ``quotation`` and aggregate the totals."""

    lines = tuple(price_item(item, catalog=catalog, rates=rates) for item in quotation.items)
    totals = aggregate_quotation(lines, quotation.discount_percent, quotation.tax_percent)
    logger.debug(
        "quotation %s: %s lines, subtotal=%.2f total=%.2f",
        quotation.id,
        len(lines),
        totals.subtotal,
        totals.total,
    )
    return PricedQuotation(quotation=quotation, lines=lines, totals=totals)


def _ensure_unique(items: Sequence[LineItem]) -> None:
    seen = set()
    for item in items:
        if item.id in seen:
            raise InvalidInputError(f"Duplicate line item id: {item.id}", field="id")
        seen.add(item.id)


def _index_of(quotation: Quotation, item_id: str) -> int:
    for idx, item in enumerate(quotation.items):
        if item.id == item_id:
            return idx
    raise KeyError(item_id)


def add_item(quotation: Quotation, item: LineItem) -> Quotation:
    items = (*quotation.items, item)
    _ensure_unique(items)
    return replace(quotation, items=items)


def remove_item(quotation: Quotation, item_id: str) -> Quotation:
    return replace(quotation, items=tuple(item for item in quotation.items if item.id != item_id))


def replace_item(quotation: Quotation, item: LineItem) -> Quotation:
    """Swap the line with ``item.id`` for ``item``, keeping its position."""

    idx = _index_of(quotation, item.id)
    items = list(quotation.items)
    items[idx] = item
    return replace(quotation, items=tuple(items))


def update_quantity(quotation: Quotation, item_id: str, quantity: int) -> Quotation:
    """Change a line's unit count; a count of zero or less removes the line."""

    if quantity <= 0:
        return remove_item(quotation, item_id)
    idx = _index_of(quotation, item_id)
    return replace_item(quotation, replace(quotation.items[idx], quantity=quantity))


def set_discount(quotation: Quotation, discount_percent: float) -> Quotation:
    return replace(quotation, discount_percent=require_percent(discount_percent, "discount_percent"))


def clear_items(quotation: Quotation) -> Quotation:
    return replace(quotation, items=(), discount_percent=0.0)
