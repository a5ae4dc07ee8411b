"""
Input loading for quotations, catalogs and recorded real costs.

This is the input boundary: user-entered percentages are clamped into
``[0, 100]`` here, header and scope spellings are normalized, and blank cells
become ``None``.  Everything past this module trusts its inputs and fails fast.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from .errors import InvalidInputError
from .models import (
    SCOPE_PARTIAL,
    SCOPE_PER_UNIT,
    SCOPE_TOTAL,
    CatalogItem,
    CatalogOptions,
    CatalogProduct,
    ClientInfo,
    CustomOption,
    Dimensions,
    ExtraCharge,
    IndirectCosts,
    LaborTask,
    LineItem,
    ManualItem,
    MaterialUsage,
    Quotation,
    RealCostRecord,
    RealExpenseRecord,
    RealLaborRecord,
)
from .pricing import DEFAULT_MARGIN_PERCENT, InMemoryCatalog, standard_labor_tasks
from .quotation import DEFAULT_TAX_PERCENT
from .validation import clamp_percent

logger = logging.getLogger(__name__)

_SCOPE_ALIASES = {
    "perunit": SCOPE_PER_UNIT,
    "per_unit": SCOPE_PER_UNIT,
    "per unit": SCOPE_PER_UNIT,
    "unit": SCOPE_PER_UNIT,
    "unidad": SCOPE_PER_UNIT,
    "partial": SCOPE_PARTIAL,
    "parcial": SCOPE_PARTIAL,
    "total": SCOPE_TOTAL,
}

_EXPENSE_COLUMNS = {
    "quotation_id": ("quotation_id", "cotizacion_id", "quotation"),
    "line_item_id": ("line_item_id", "item_id", "line_item"),
    "material_name": ("material_name", "material", "material_nombre", "name"),
    "budgeted_quantity": ("budgeted_quantity", "cantidad_presupuestada", "budget_qty"),
    "actual_quantity": ("actual_quantity", "cantidad_real", "actual_qty", "quantity"),
    "budgeted_unit_price": ("budgeted_unit_price", "precio_unitario_presupuestado", "budget_price"),
    "actual_unit_price": ("actual_unit_price", "precio_unitario_real", "actual_price", "unit_price"),
    "purchase_date": ("purchase_date", "fecha_compra", "date"),
    "provider": ("provider", "proveedor", "supplier"),
    "invoice_number": ("invoice_number", "numero_factura", "invoice"),
    "unit": ("unit", "unidad_medida", "uom"),
    "notes": ("notes", "notas"),
    "allocation_scope": ("allocation_scope", "alcance_gasto", "scope"),
    "applied_unit_count": ("applied_unit_count", "cantidad_items_aplicados", "applied_units"),
}

_LABOR_COLUMNS = {
    "quotation_id": ("quotation_id", "cotizacion_id"),
    "line_item_id": ("line_item_id", "item_id"),
    "hours_worked": ("hours_worked", "horas_trabajadas", "hours"),
    "hourly_pay": ("hourly_pay", "pago_por_hora", "rate"),
    "manual_amount": ("manual_amount", "monto_manual", "amount"),
    "worker": ("worker", "trabajador"),
    "work_date": ("work_date", "fecha", "date"),
    "allocation_scope": ("allocation_scope", "alcance_gasto", "scope"),
    "applied_unit_count": ("applied_unit_count", "cantidad_items_aplicados", "applied_units"),
}

_COST_COLUMNS = {
    "quotation_id": ("quotation_id", "cotizacion_id"),
    "line_item_id": ("line_item_id", "item_id"),
    "description": ("description", "descripcion", "tipo_descripcion"),
    "amount": ("amount", "monto", "costo", "cost"),
    "cost_date": ("cost_date", "fecha", "date"),
    "allocation_scope": ("allocation_scope", "alcance_gasto", "scope"),
    "applied_unit_count": ("applied_unit_count", "cantidad_items_aplicados", "applied_units"),
}


def normalize_scope(value: object) -> Optional[str]:
    """Map a recorded scope spelling onto a canonical scope; blanks become ``None``."""

    text = _text(value)
    if text is None:
        return None
    key = text.lower()
    if key in _SCOPE_ALIASES:
        return _SCOPE_ALIASES[key]
    raise InvalidInputError(f"Unknown allocation scope: {text!r}", field="allocation_scope")


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT or (isinstance(value, str) and not value.strip())


def _text(value: object) -> Optional[str]:
    if _is_blank(value):
        return None
    return str(value).strip()


def _number(value: object, default: float = 0.0) -> float:
    if _is_blank(value):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).replace("$", "").replace(",", "").strip()
    try:
        return float(text)
    except ValueError as exc:
        raise InvalidInputError(f"Not a number: {value!r}") from exc


def _optional_number(value: object) -> Optional[float]:
    return None if _is_blank(value) else _number(value)


def _optional_int(value: object) -> Optional[int]:
    number = _optional_number(value)
    if number is None:
        return None
    if not number.is_integer():
        raise InvalidInputError(f"Not a whole number: {value!r}")
    return int(number)


def _date(value: object):
    if _is_blank(value):
        return None
    stamp = pd.to_datetime(value, errors="coerce")
    if pd.isna(stamp):
        logger.warning("Unreadable date %r; leaving it blank", value)
        return None
    return stamp.date()


# ---------------------------------------------------------------------------
# Quotations (JSON)
# ---------------------------------------------------------------------------


def _dimensions(payload: Optional[Mapping[str, Any]]) -> Optional[Dimensions]:
    if not payload:
        return None
    return Dimensions(
        width=_optional_number(payload.get("width")),
        height=_optional_number(payload.get("height")),
        depth=_optional_number(payload.get("depth")),
        unit=payload.get("unit") or "cm",
    )


def _materials(rows: Iterable[Mapping[str, Any]]) -> tuple:
    materials = []
    for idx, row in enumerate(rows or ()):
        materials.append(
            MaterialUsage(
                material_id=str(row.get("material_id") or row.get("id") or f"mat-{idx + 1}"),
                name=str(row.get("name") or row.get("material_name") or ""),
                quantity=_number(row.get("quantity")),
                unit_price=_number(row.get("unit_price")),
                unit=row.get("unit") or "unit",
            )
        )
    return tuple(materials)


def _labor_tasks(payload: Mapping[str, Any]) -> tuple:
    if "labor_tasks" in payload:
        return tuple(
            LaborTask(
                name=str(task.get("name") or "task"),
                hours=_number(task.get("hours")),
                days=_number(task.get("days")),
            )
            for task in payload.get("labor_tasks") or ()
        )
    labor = payload.get("labor") or {}
    return standard_labor_tasks(
        measuring_hours=_number(labor.get("measuring_hours")),
        design_hours=_number(labor.get("design_hours")),
        assembly_days=_number(labor.get("assembly_days")),
        installation_days=_number(labor.get("installation_days")),
    )


def _manual_item(payload: Mapping[str, Any]) -> ManualItem:
    indirect = payload.get("indirect_costs") or {}
    charge = payload.get("extra_charge") or {}
    flags = payload.get("no_cost_data") or {}
    return ManualItem(
        id=str(payload["id"]),
        name=str(payload.get("name") or ""),
        description=str(payload.get("description") or ""),
        quantity=payload.get("quantity", 1),
        dimensions=_dimensions(payload.get("dimensions")),
        materials=_materials(payload.get("materials")),
        labor_mode=payload.get("labor_mode") or "hours",
        labor_tasks=_labor_tasks(payload),
        fixed_labor_amount=_number(payload.get("fixed_labor_amount")),
        painting_amount=_number(payload.get("painting_amount")),
        indirect_costs=IndirectCosts(
            transport=_number(indirect.get("transport")),
            tools=_number(indirect.get("tools")),
            space_rental=_number(indirect.get("space_rental")),
            petty_cash=_number(indirect.get("petty_cash")),
            notes=str(indirect.get("notes") or ""),
        ),
        extra_charge=ExtraCharge(
            mode=charge.get("mode") or "percentage",
            value=(
                clamp_percent(charge.get("value"))
                if (charge.get("mode") or "percentage") == "percentage"
                else _number(charge.get("value"))
            ),
        ),
        profit_margin_percent=clamp_percent(
            payload.get("profit_margin_percent"), default=DEFAULT_MARGIN_PERCENT
        ),
        labor_surcharge_percent=clamp_percent(payload.get("labor_surcharge_percent")),
        no_materials_data=bool(flags.get("materials", False)),
        no_labor_data=bool(flags.get("labor", False)),
        no_indirect_data=bool(flags.get("indirect", False)),
    )


def _catalog_item(payload: Mapping[str, Any]) -> CatalogItem:
    options = payload.get("options") or {}
    custom = {k: str(v) for k, v in (options.get("custom") or {}).items()}
    return CatalogItem(
        id=str(payload["id"]),
        product_id=str(payload["product_id"]),
        quantity=payload.get("quantity", 1),
        options=CatalogOptions(
            color=options.get("color"),
            material=options.get("material"),
            countertop=options.get("countertop"),
            custom=custom,
        ),
        dimensions=_dimensions(payload.get("dimensions")),
    )


def line_item_from_dict(payload: Mapping[str, Any]) -> LineItem:
    kind = (payload.get("type") or "manual").lower()
    if kind == "manual":
        return _manual_item(payload)
    if kind == "catalog":
        return _catalog_item(payload)
    raise InvalidInputError(f"Unknown line item type: {kind!r}", field="type")


def quotation_from_dict(
    payload: Mapping[str, Any], default_tax_percent: float = DEFAULT_TAX_PERCENT
) -> Quotation:
    client = payload.get("client") or {}
    return Quotation(
        id=str(payload.get("id") or payload.get("number") or "draft"),
        number=str(payload.get("number") or ""),
        client=ClientInfo(
            name=str(client.get("name") or ""),
            email=str(client.get("email") or ""),
            phone=str(client.get("phone") or ""),
            address=str(client.get("address") or ""),
        ),
        items=tuple(line_item_from_dict(item) for item in payload.get("items") or ()),
        discount_percent=clamp_percent(payload.get("discount_percent")),
        tax_percent=clamp_percent(payload.get("tax_percent"), default=default_tax_percent),
    )


def load_quotation(path: Path, default_tax_percent: float = DEFAULT_TAX_PERCENT) -> Quotation:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return quotation_from_dict(payload, default_tax_percent=default_tax_percent)


# ---------------------------------------------------------------------------
# Tabular records (CSV / XLSX)
# ---------------------------------------------------------------------------


def _read_table(path: Path) -> pd.DataFrame:
    path = Path(path)
    if path.suffix.lower() in {".xlsx", ".xlsm"}:
        return pd.read_excel(path, engine="openpyxl")
    return pd.read_csv(path)


def _canonical_columns(df: pd.DataFrame, aliases: Mapping[str, Iterable[str]]) -> pd.DataFrame:
    lookup: Dict[str, str] = {}
    for canonical, spellings in aliases.items():
        for spelling in spellings:
            lookup.setdefault(spelling, canonical)
    renamed: Dict[str, str] = {}
    for column in df.columns:
        key = str(column).strip().lower().replace(" ", "_")
        target = lookup.get(key)
        if target and target not in renamed.values():
            renamed[column] = target
    out = df.rename(columns=renamed)
    for canonical in aliases:
        if canonical not in out.columns:
            out[canonical] = None
    return out


def _row_scope(row: Mapping[str, Any]) -> tuple:
    return normalize_scope(row.get("allocation_scope")), _optional_int(row.get("applied_unit_count"))


def load_expense_records(path: Path) -> List[RealExpenseRecord]:
    """Read recorded material purchases from a CSV or XLSX file."""

    df = _canonical_columns(_read_table(path), _EXPENSE_COLUMNS)
    records: List[RealExpenseRecord] = []
    for row in df.to_dict(orient="records"):
        name = _text(row.get("material_name"))
        if name is None:
            logger.debug("Skipping expense row without a material name: %s", row)
            continue
        scope, applied = _row_scope(row)
        records.append(
            RealExpenseRecord(
                quotation_id=_text(row.get("quotation_id")) or "",
                line_item_id=_text(row.get("line_item_id")) or "",
                material_name=name,
                budgeted_quantity=_number(row.get("budgeted_quantity")),
                actual_quantity=_number(row.get("actual_quantity")),
                budgeted_unit_price=_number(row.get("budgeted_unit_price")),
                actual_unit_price=_number(row.get("actual_unit_price")),
                purchase_date=_date(row.get("purchase_date")),
                provider=_text(row.get("provider")),
                invoice_number=_text(row.get("invoice_number")),
                unit=_text(row.get("unit")) or "unit",
                notes=_text(row.get("notes")) or "",
                allocation_scope=scope,
                applied_unit_count=applied,
            )
        )
    logger.info("Loaded %s expense records from %s", len(records), path)
    return records


def load_labor_records(path: Path) -> List[RealLaborRecord]:
    df = _canonical_columns(_read_table(path), _LABOR_COLUMNS)
    records = []
    for row in df.to_dict(orient="records"):
        scope, applied = _row_scope(row)
        records.append(
            RealLaborRecord(
                quotation_id=_text(row.get("quotation_id")) or "",
                line_item_id=_text(row.get("line_item_id")) or "",
                hours_worked=_number(row.get("hours_worked")),
                hourly_pay=_number(row.get("hourly_pay")),
                manual_amount=_optional_number(row.get("manual_amount")),
                worker=_text(row.get("worker")) or "",
                work_date=_date(row.get("work_date")),
                allocation_scope=scope,
                applied_unit_count=applied,
            )
        )
    return records


def load_cost_records(path: Path) -> List[RealCostRecord]:
    """Read flat real costs (petty cash, transport) from a CSV or XLSX file."""

    df = _canonical_columns(_read_table(path), _COST_COLUMNS)
    records = []
    for row in df.to_dict(orient="records"):
        scope, applied = _row_scope(row)
        records.append(
            RealCostRecord(
                quotation_id=_text(row.get("quotation_id")) or "",
                line_item_id=_text(row.get("line_item_id")) or "",
                description=_text(row.get("description")) or "",
                amount=_number(row.get("amount")),
                cost_date=_date(row.get("cost_date")),
                allocation_scope=scope,
                applied_unit_count=applied,
            )
        )
    return records


def _custom_options(value: object) -> Dict[str, tuple]:
    text = _text(value)
    if text is None:
        return {}
    payload = json.loads(text)
    return {
        group: tuple(
            CustomOption(
                name=str(opt["name"]),
                extra_price=_number(opt.get("extra_price")),
                multiplier=_number(opt.get("multiplier"), default=1.0),
            )
            for opt in options
        )
        for group, options in payload.items()
    }


def load_catalog(path: Path) -> InMemoryCatalog:
    """Read catalog products (``id,name,unit_cost,unit,category[,custom_options]``)."""

    df = _read_table(path)
    df.columns = [str(col).strip().lower() for col in df.columns]
    missing = {"id", "unit_cost"} - set(df.columns)
    if missing:
        raise InvalidInputError(f"Catalog file {path} is missing columns: {sorted(missing)}")
    products = []
    for row in df.to_dict(orient="records"):
        products.append(
            CatalogProduct(
                id=str(row["id"]).strip(),
                name=_text(row.get("name")) or "",
                unit_cost=_number(row.get("unit_cost")),
                unit=_text(row.get("unit")) or "unit",
                category=_text(row.get("category")) or "",
                custom_options=_custom_options(row.get("custom_options")),
            )
        )
    logger.info("Loaded %s catalog products from %s", len(products), path)
    return InMemoryCatalog.from_products(products)
