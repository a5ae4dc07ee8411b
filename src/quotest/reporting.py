from __future__ import annotations

from typing import Mapping

import numpy as np
import pandas as pd

from .models import ManualItem, PricedQuotation
from .pricing import LaborRates, labor_hours
from .profitability import ProfitabilitySummary
from .reconciliation import Reconciliation


def lines_frame(priced: PricedQuotation, rates: LaborRates | None = None) -> pd.DataFrame:
    """One row per priced line, with the manual cost breakdown where available."""

    rows = []
    for line in priced.lines:
        item = line.item
        bd = line.breakdown
        rows.append(
            {
                "ITEM_ID": line.item_id,
                "KIND": "manual" if isinstance(item, ManualItem) else "catalog",
                "NAME": item.name if isinstance(item, ManualItem) else item.product_id,
                "QUANTITY": line.quantity,
                "UNIT_PRICE": line.unit_price,
                "LINE_TOTAL": line.line_total,
                "MATERIALS": bd.materials_cost if bd else np.nan,
                "LABOR": bd.labor_with_paint + bd.labor_surcharge if bd else np.nan,
                "LABOR_HOURS": labor_hours(item, rates) if isinstance(item, ManualItem) else np.nan,
                "INDIRECT": bd.indirect_costs if bd else np.nan,
                "MARGIN": bd.margin_amount if bd else np.nan,
                "EXTRA_CHARGE": bd.extra_charge if bd else np.nan,
            }
        )
    return pd.DataFrame(rows, columns=[
        "ITEM_ID", "KIND", "NAME", "QUANTITY", "UNIT_PRICE", "LINE_TOTAL", "MATERIALS",
        "LABOR", "LABOR_HOURS", "INDIRECT", "MARGIN", "EXTRA_CHARGE",
    ])


def totals_frame(priced: PricedQuotation) -> pd.DataFrame:
    totals = priced.totals
    return pd.DataFrame(
        {
            "LABEL": ["SUBTOTAL", "DISCOUNT", "TAXABLE_BASE", "TAX", "TOTAL"],
            "AMOUNT": [
                totals.subtotal,
                -totals.discount_amount,
                totals.taxable_base,
                totals.tax_amount,
                totals.total,
            ],
        }
    )


def reconciliation_frame(results: Mapping[str, Reconciliation]) -> pd.DataFrame:
    rows = []
    for item_id, rec in results.items():
        for row in rec.per_material:
            rows.append(
                {
                    "ITEM_ID": item_id,
                    "MATERIAL": row.material_name,
                    "MATCHED_AS": row.matched_name or "",
                    "MATCH": row.match_strategy or "none",
                    "BUDGET_QTY": row.budgeted_quantity,
                    "BUDGET_TOTAL": row.budgeted_total,
                    "ACTUAL_QTY": row.actual_quantity,
                    "ACTUAL_TOTAL": row.actual_total,
                }
            )
        for group in rec.unbudgeted:
            rows.append(
                {
                    "ITEM_ID": item_id,
                    "MATERIAL": "",
                    "MATCHED_AS": group.name,
                    "MATCH": "unbudgeted",
                    "BUDGET_QTY": 0.0,
                    "BUDGET_TOTAL": 0.0,
                    "ACTUAL_QTY": group.actual_quantity,
                    "ACTUAL_TOTAL": group.actual_total,
                }
            )
    df = pd.DataFrame(rows, columns=[
        "ITEM_ID", "MATERIAL", "MATCHED_AS", "MATCH", "BUDGET_QTY", "BUDGET_TOTAL",
        "ACTUAL_QTY", "ACTUAL_TOTAL",
    ])
    df["VARIANCE"] = df["ACTUAL_TOTAL"] - df["BUDGET_TOTAL"]
    budget = df["BUDGET_TOTAL"].astype(float)
    with np.errstate(divide="ignore", invalid="ignore"):
        df["VARIANCE_PCT"] = np.where(budget != 0, df["VARIANCE"] / budget * 100, 0.0)
    return df


def profitability_frame(summary: ProfitabilitySummary) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "CATEGORY": row.category,
                "BUDGETED": row.budgeted,
                "ACTUAL": row.actual,
                "VARIANCE": row.variance,
                "VARIANCE_PCT": row.variance_percent,
                "RECORDS": row.records,
            }
            for row in summary.categories
        ]
    )
    total = pd.DataFrame(
        [
            {
                "CATEGORY": "TOTAL_COST",
                "BUDGETED": summary.budgeted_cost,
                "ACTUAL": summary.actual_cost,
                "VARIANCE": summary.actual_cost - summary.budgeted_cost,
                "VARIANCE_PCT": np.nan,
                "RECORDS": int(df["RECORDS"].sum()),
            },
            {
                "CATEGORY": "PROFIT",
                "BUDGETED": summary.budgeted_profit,
                "ACTUAL": summary.actual_profit,
                "VARIANCE": summary.profit_variance,
                "VARIANCE_PCT": np.nan,
                "RECORDS": 0,
            },
        ]
    )
    return pd.concat([df, total], ignore_index=True)


def make_summary_text(priced: PricedQuotation) -> str:
    totals = priced.totals
    lines = lines_frame(priced)
    top = lines.sort_values("LINE_TOTAL", ascending=False).head(5)[
        ["ITEM_ID", "NAME", "QUANTITY", "UNIT_PRICE", "LINE_TOTAL"]
    ]
    quotation = priced.quotation
    label = quotation.number or quotation.id
    return (
        f"Quotation {label} for {quotation.client.name or 'unnamed client'}: "
        f"{len(lines)} lines.\n"
        f"Subtotal ${totals.subtotal:,.0f}, discount ${totals.discount_amount:,.0f}, "
        f"tax ${totals.tax_amount:,.0f} ({quotation.tax_percent:g}%).\n"
        f"Total ${totals.total:,.0f}.\n"
        f"Top lines:\n{top.to_string(index=False)}\n"
    )
