"""Persistence of priced quotations and reconciliation reports."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import date
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol

import pandas as pd

from .models import PricedQuotation
from .profitability import ProfitabilitySummary
from .reconciliation import Reconciliation
from .reporting import lines_frame, profitability_frame, reconciliation_frame, totals_frame

logger = logging.getLogger(__name__)


class QuotationStore(Protocol):
    """Where priced quotations end up; the engine itself never persists anything."""

    def save(self, priced: PricedQuotation) -> None:
        ...


def _json_default(value: object):
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def quotation_snapshot(priced: PricedQuotation) -> dict:
    return {
        "quotation": asdict(priced.quotation),
        "lines": [
            {
                "item_id": line.item_id,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "line_total": line.line_total,
                "breakdown": asdict(line.breakdown) if line.breakdown else None,
            }
            for line in priced.lines
        ],
        "totals": asdict(priced.totals),
    }


def write_outputs(
    priced: PricedQuotation,
    output_dir: Path,
    reconciliation: Optional[Mapping[str, Reconciliation]] = None,
    profitability: Optional[ProfitabilitySummary] = None,
) -> Dict[str, Path]:
    """Write the JSON snapshot, the line CSV and an XLSX workbook for ``priced``."""

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    stem = f"quotation_{priced.quotation.number or priced.quotation.id}"

    paths = {
        "json": output_dir / f"{stem}.json",
        "csv": output_dir / f"{stem}_lines.csv",
        "xlsx": output_dir / f"{stem}.xlsx",
    }
    paths["json"].write_text(
        json.dumps(quotation_snapshot(priced), indent=2, default=_json_default),
        encoding="utf-8",
    )
    lines = lines_frame(priced)
    lines.to_csv(paths["csv"], index=False)

    with pd.ExcelWriter(paths["xlsx"], engine="openpyxl") as writer:
        lines.to_excel(writer, sheet_name="LINES", index=False)
        totals_frame(priced).to_excel(writer, sheet_name="TOTALS", index=False)
        if reconciliation:
            reconciliation_frame(reconciliation).to_excel(writer, sheet_name="RECONCILIATION", index=False)
        if profitability is not None:
            profitability_frame(profitability).to_excel(writer, sheet_name="PROFITABILITY", index=False)

    for kind, path in paths.items():
        logger.info("Wrote %s output: %s", kind, path)
    return paths


class DirectoryStore:
    """:class:`QuotationStore` that writes each quotation's outputs into one directory."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self.saved: Dict[str, Dict[str, Path]] = {}

    def save(self, priced: PricedQuotation) -> None:
        self.saved[priced.quotation.id] = write_outputs(priced, self.output_dir)
