from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple, Union

LABOR_MODE_HOURS = "hours"
LABOR_MODE_FIXED = "fixedAmount"
LABOR_MODES = (LABOR_MODE_HOURS, LABOR_MODE_FIXED)

CHARGE_PERCENTAGE = "percentage"
CHARGE_FIXED = "fixedAmount"
CHARGE_MODES = (CHARGE_PERCENTAGE, CHARGE_FIXED)

SCOPE_PER_UNIT = "perUnit"
SCOPE_PARTIAL = "partial"
SCOPE_TOTAL = "total"
ALLOCATION_SCOPES = (SCOPE_PER_UNIT, SCOPE_PARTIAL, SCOPE_TOTAL)


@dataclass(frozen=True)
class Dimensions:
    width: Optional[float] = None
    height: Optional[float] = None
    depth: Optional[float] = None
    unit: str = "cm"


@dataclass(frozen=True)
class MaterialUsage:
    """One material consumed by a single physical unit of a line item."""

    material_id: str
    name: str
    quantity: float = 0.0
    unit_price: float = 0.0
    unit: str = "unit"

    @property
    def cost(self) -> float:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class LaborTask:
    """A labor sub-task priced by hours, by workdays, or both."""

    name: str
    hours: float = 0.0
    days: float = 0.0


@dataclass(frozen=True)
class IndirectCosts:
    transport: float = 0.0
    tools: float = 0.0
    space_rental: float = 0.0
    petty_cash: float = 0.0
    notes: str = ""

    @property
    def total(self) -> float:
        return self.transport + self.tools + self.space_rental + self.petty_cash


@dataclass(frozen=True)
class ExtraCharge:
    mode: str = CHARGE_PERCENTAGE
    value: float = 0.0


@dataclass(frozen=True)
class ManualItem:
    """Freeform line item whose price is built from its own cost inputs."""

    id: str
    name: str
    quantity: int = 1
    description: str = ""
    dimensions: Optional[Dimensions] = None
    materials: Tuple[MaterialUsage, ...] = ()
    labor_mode: str = LABOR_MODE_HOURS
    labor_tasks: Tuple[LaborTask, ...] = ()
    fixed_labor_amount: float = 0.0
    painting_amount: float = 0.0
    indirect_costs: IndirectCosts = field(default_factory=IndirectCosts)
    extra_charge: ExtraCharge = field(default_factory=ExtraCharge)
    profit_margin_percent: float = 0.0
    labor_surcharge_percent: float = 0.0
    no_materials_data: bool = False
    no_labor_data: bool = False
    no_indirect_data: bool = False


@dataclass(frozen=True)
class CatalogOptions:
    color: Optional[str] = None
    material: Optional[str] = None
    countertop: Optional[str] = None
    # kitchen-only selections keyed by option group, e.g. {"door_material": "Lacquer"}
    custom: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogItem:
    """Line item backed by a catalog product plus the customer's selections."""

    id: str
    product_id: str
    quantity: int = 1
    options: CatalogOptions = field(default_factory=CatalogOptions)
    dimensions: Optional[Dimensions] = None


LineItem = Union[CatalogItem, ManualItem]


@dataclass(frozen=True)
class CustomOption:
    name: str
    extra_price: float = 0.0
    multiplier: float = 1.0


@dataclass(frozen=True)
class CatalogProduct:
    """Record returned by the catalog lookup collaborator."""

    id: str
    name: str
    unit_cost: float
    unit: str = "unit"
    category: str = ""
    custom_options: Dict[str, Tuple[CustomOption, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class LineBreakdown:
    """Intermediate amounts of a manual item's unit price, in evaluation order."""

    materials_cost: float
    labor_base: float
    painting: float
    labor_with_paint: float
    labor_surcharge: float
    indirect_costs: float
    margin_base: float
    extra_charge: float
    margin_amount: float
    no_materials_data: bool = False
    no_labor_data: bool = False
    no_indirect_data: bool = False


@dataclass(frozen=True)
class PricedLine:
    item: LineItem
    unit_price: float
    line_total: float
    breakdown: Optional[LineBreakdown] = None

    @property
    def item_id(self) -> str:
        return self.item.id

    @property
    def quantity(self) -> int:
        return self.item.quantity


@dataclass(frozen=True)
class QuotationTotals:
    subtotal: float
    discount_amount: float
    taxable_base: float
    tax_amount: float
    total: float


@dataclass(frozen=True)
class ClientInfo:
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""


@dataclass(frozen=True)
class Quotation:
    id: str
    client: ClientInfo = field(default_factory=ClientInfo)
    items: Tuple[LineItem, ...] = ()
    discount_percent: float = 0.0
    tax_percent: float = 19.0
    number: str = ""


@dataclass(frozen=True)
class PricedQuotation:
    quotation: Quotation
    lines: Tuple[PricedLine, ...]
    totals: QuotationTotals

    def line(self, item_id: str) -> PricedLine:
        for priced in self.lines:
            if priced.item_id == item_id:
                return priced
        raise KeyError(item_id)


@dataclass(frozen=True)
class RealExpenseRecord:
    """A recorded material purchase charged against one line item."""

    quotation_id: str
    line_item_id: str
    material_name: str
    budgeted_quantity: float
    actual_quantity: float
    budgeted_unit_price: float
    actual_unit_price: float
    purchase_date: Optional[date] = None
    provider: Optional[str] = None
    invoice_number: Optional[str] = None
    unit: str = "unit"
    notes: str = ""
    allocation_scope: Optional[str] = None
    applied_unit_count: Optional[int] = None


@dataclass(frozen=True)
class RealLaborRecord:
    """Wages actually paid for work on a line item."""

    quotation_id: str
    line_item_id: str
    hours_worked: float = 0.0
    hourly_pay: float = 0.0
    manual_amount: Optional[float] = None
    worker: str = ""
    work_date: Optional[date] = None
    allocation_scope: Optional[str] = None
    applied_unit_count: Optional[int] = None

    @property
    def amount(self) -> float:
        if self.manual_amount is not None:
            return self.manual_amount
        return self.hours_worked * self.hourly_pay


@dataclass(frozen=True)
class RealCostRecord:
    """A flat real cost such as a petty-cash purchase or a transport run."""

    quotation_id: str
    line_item_id: str
    description: str
    amount: float
    cost_date: Optional[date] = None
    allocation_scope: Optional[str] = None
    applied_unit_count: Optional[int] = None
