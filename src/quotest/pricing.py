"""
Unit pricing for quotation line items.

Manual items are priced from their own cost inputs.  The profit margin is
applied to materials and indirect costs only; labor, painting, the labor
surcharge and extra charges are passed through without markup.  Catalog items
take the catalog's base price and apply the multipliers of the selected
options.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol

from dotenv import load_dotenv

from .errors import InvalidInputError, UnknownProductError
from .models import (
    CHARGE_MODES,
    CHARGE_PERCENTAGE,
    LABOR_MODE_FIXED,
    LABOR_MODE_HOURS,
    CatalogItem,
    CatalogProduct,
    LaborTask,
    LineBreakdown,
    LineItem,
    ManualItem,
    PricedLine,
)
from .validation import require_amount, require_percent, require_unit_count

load_dotenv()

logger = logging.getLogger(__name__)

# Workshop labor rates, in the quotation currency.
HOURLY_LABOR_RATE = float(os.getenv("HOURLY_LABOR_RATE", "12000"))
DAILY_LABOR_RATE = float(os.getenv("DAILY_LABOR_RATE", "64515"))

# Margin applied to manual items that do not state one.
DEFAULT_MARGIN_PERCENT = float(os.getenv("DEFAULT_MARGIN_PERCENT", "0"))

# Catalog prices are quoted in whole thousands.
CATALOG_ROUNDING = float(os.getenv("CATALOG_PRICE_ROUNDING", "1000"))

MATERIAL_MULTIPLIERS: Dict[str, float] = {
    "Melamine": 1.0,
    "Solid Wood": 1.3,
    "Gloss Lacquer": 1.2,
    "MDF": 1.1,
}

COUNTERTOP_MULTIPLIERS: Dict[str, float] = {
    "Black Marble": 1.5,
    "White Quartz": 1.4,
    "Granite": 1.3,
    "Formica": 1.0,
}

COLOR_MULTIPLIERS: Dict[str, float] = {
    "White": 1.0,
    "Black": 1.1,
    "Brown": 1.05,
    "Gray": 1.05,
}

KITCHEN_CATEGORY = "kitchen"


@dataclass(frozen=True)
class LaborRates:
    hourly: float = HOURLY_LABOR_RATE
    daily: float = DAILY_LABOR_RATE

    @property
    def hours_per_day(self) -> float:
        return self.daily / self.hourly if self.hourly else 0.0


class CatalogLookup(Protocol):
    def get(self, product_id: str) -> Optional[CatalogProduct]:
        ...


class InMemoryCatalog:
    """Catalog lookup over a fixed set of products."""

    def __init__(self, products: Mapping[str, CatalogProduct] | None = None) -> None:
        self._products: Dict[str, CatalogProduct] = dict(products or {})

    @classmethod
    def from_products(cls, products) -> "InMemoryCatalog":
        return cls({product.id: product for product in products})

    def get(self, product_id: str) -> Optional[CatalogProduct]:
        return self._products.get(product_id)

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products


def labor_task_cost(task: LaborTask, rates: LaborRates | None = None) -> float:
    rates = rates or LaborRates()
    hours = require_amount(task.hours, f"labor_tasks[{task.name}].hours")
    days = require_amount(task.days, f"labor_tasks[{task.name}].days")
    return hours * rates.hourly + days * rates.daily


def labor_hours(item: ManualItem, rates: LaborRates | None = None) -> float:
    """Total labor in hour-equivalents; a workday counts as ``daily / hourly`` hours."""

    if item.labor_mode != LABOR_MODE_HOURS:
        return 0.0
    rates = rates or LaborRates()
    return sum(task.hours + task.days * rates.hours_per_day for task in item.labor_tasks)


def standard_labor_tasks(
    measuring_hours: float = 0.0,
    design_hours: float = 0.0,
    assembly_days: float = 0.0,
    installation_days: float = 0.0,
) -> tuple[LaborTask, ...]:
    """Build the workshop's usual sub-task list, skipping empty entries."""

    tasks = (
        LaborTask("measuring", hours=measuring_hours),
        LaborTask("design", hours=design_hours),
        LaborTask("assembly", days=assembly_days),
        LaborTask("installation", days=installation_days),
    )
    return tuple(task for task in tasks if task.hours or task.days)


def _labor_base(item: ManualItem, rates: LaborRates) -> float:
    if item.labor_mode == LABOR_MODE_FIXED:
        return require_amount(item.fixed_labor_amount, "fixed_labor_amount")
    if item.labor_mode == LABOR_MODE_HOURS:
        return sum(labor_task_cost(task, rates) for task in item.labor_tasks)
    raise InvalidInputError(f"Unknown labor mode: {item.labor_mode!r}", field="labor_mode")


def _extra_charge(item: ManualItem, margin_base: float) -> float:
    charge = item.extra_charge
    if charge.mode not in CHARGE_MODES:
        raise InvalidInputError(f"Unknown extra charge mode: {charge.mode!r}", field="extra_charge.mode")
    if charge.mode == CHARGE_PERCENTAGE:
        return margin_base * (require_percent(charge.value, "extra_charge.value") / 100)
    return require_amount(charge.value, "extra_charge.value")


def price_line_item(item: ManualItem, rates: LaborRates | None = None) -> PricedLine:
    """Price a manual line item.

    Raises :class:`InvalidInputError` for negative amounts or quantities and
    for percentages outside ``[0, 100]``.  Inputs are never clamped here.
    """

    rates = rates or LaborRates()
    quantity = require_unit_count(item.quantity)

    materials_cost = 0.0
    for idx, usage in enumerate(item.materials):
        qty = require_amount(usage.quantity, f"materials[{idx}].quantity")
        price = require_amount(usage.unit_price, f"materials[{idx}].unit_price")
        materials_cost += qty * price

    labor_base = _labor_base(item, rates)
    painting = require_amount(item.painting_amount, "painting_amount")
    labor_with_paint = labor_base + painting
    surcharge_pct = require_percent(item.labor_surcharge_percent, "labor_surcharge_percent")
    labor_surcharge = labor_with_paint * (surcharge_pct / 100)

    indirect = item.indirect_costs
    indirect_costs = (
        require_amount(indirect.transport, "indirect_costs.transport")
        + require_amount(indirect.tools, "indirect_costs.tools")
        + require_amount(indirect.space_rental, "indirect_costs.space_rental")
        + require_amount(indirect.petty_cash, "indirect_costs.petty_cash")
    )

    margin_base = materials_cost + indirect_costs
    extra_charge = _extra_charge(item, margin_base)
    margin_pct = require_percent(item.profit_margin_percent, "profit_margin_percent")
    margin_amount = margin_base * (margin_pct / 100)

    unit_price = margin_base + margin_amount + labor_with_paint + labor_surcharge + extra_charge
    line_total = unit_price * quantity

    breakdown = LineBreakdown(
        materials_cost=materials_cost,
        labor_base=labor_base,
        painting=painting,
        labor_with_paint=labor_with_paint,
        labor_surcharge=labor_surcharge,
        indirect_costs=indirect_costs,
        margin_base=margin_base,
        extra_charge=extra_charge,
        margin_amount=margin_amount,
        no_materials_data=item.no_materials_data,
        no_labor_data=item.no_labor_data,
        no_indirect_data=item.no_indirect_data,
    )
    logger.debug(
        "priced manual item %s: unit=%.2f qty=%s total=%.2f", item.id, unit_price, quantity, line_total
    )
    return PricedLine(item=item, unit_price=unit_price, line_total=line_total, breakdown=breakdown)


def _round_half_up(value: float, step: float) -> float:
    if step <= 0:
        return value
    return math.floor(value / step + 0.5) * step


def _apply_multiplier(price: float, table: Mapping[str, float], selection: Optional[str]) -> float:
    if not selection:
        return price
    multiplier = table.get(selection)
    if multiplier is None or multiplier == 1.0:
        return price
    return price * multiplier


def catalog_unit_price(product: CatalogProduct, item: CatalogItem) -> float:
    """Compute the option-adjusted unit price for a catalog product."""

    price = require_amount(product.unit_cost, "unit_cost")
    options = item.options
    price = _apply_multiplier(price, MATERIAL_MULTIPLIERS, options.material)
    price = _apply_multiplier(price, COUNTERTOP_MULTIPLIERS, options.countertop)
    price = _apply_multiplier(price, COLOR_MULTIPLIERS, options.color)

    if product.category.lower() == KITCHEN_CATEGORY:
        for group, selected in options.custom.items():
            choice = next(
                (opt for opt in product.custom_options.get(group, ()) if opt.name == selected),
                None,
            )
            if choice is None:
                continue
            price += choice.extra_price
            if choice.multiplier != 1.0:
                price *= choice.multiplier

    return _round_half_up(price, CATALOG_ROUNDING)


def price_catalog_item(item: CatalogItem, catalog: CatalogLookup) -> PricedLine:
    quantity = require_unit_count(item.quantity)
    product = catalog.get(item.product_id)
    if product is None:
        raise UnknownProductError(item.product_id)
    unit_price = catalog_unit_price(product, item)
    return PricedLine(item=item, unit_price=unit_price, line_total=unit_price * quantity)


def price_item(item: LineItem, catalog: CatalogLookup | None = None, rates: LaborRates | None = None) -> PricedLine:
    """Dispatch on the line item's kind."""

    if isinstance(item, ManualItem):
        return price_line_item(item, rates=rates)
    if isinstance(item, CatalogItem):
        if catalog is None:
            raise InvalidInputError(
                f"Catalog item {item.id} cannot be priced without a catalog", field="product_id"
            )
        return price_catalog_item(item, catalog)
    raise InvalidInputError(f"Unsupported line item type: {type(item).__name__}")


__all__ = [
    "HOURLY_LABOR_RATE",
    "DAILY_LABOR_RATE",
    "CATALOG_ROUNDING",
    "DEFAULT_MARGIN_PERCENT",
    "MATERIAL_MULTIPLIERS",
    "COUNTERTOP_MULTIPLIERS",
    "COLOR_MULTIPLIERS",
    "LaborRates",
    "CatalogLookup",
    "InMemoryCatalog",
    "labor_task_cost",
    "labor_hours",
    "standard_labor_tasks",
    "price_line_item",
    "catalog_unit_price",
    "price_catalog_item",
    "price_item",
]
