from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd
import pytest

from quotest import cli


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("CATALOG_CSV", "OUTPUT_DIR", "STRICT_NAME_MATCHING", "DEFAULT_TAX_PERCENT"):
        monkeypatch.delenv(key, raising=False)


def _quotation(tmp_path: Path) -> Path:
    path = tmp_path / "quote.json"
    path.write_text(
        json.dumps(
            {
                "id": "Q5",
                "number": "Q-5",
                "items": [
                    {
                        "id": "L1",
                        "name": "Bookcase",
                        "quantity": 2,
                        "materials": [
                            {"material_id": "m1", "name": "MDF 18mm", "quantity": 1, "unit_price": 30000},
                            {"material_id": "m2", "name": "Handles", "quantity": 4, "unit_price": 2000},
                        ],
                        "labor_mode": "fixedAmount",
                        "fixed_labor_amount": 40000,
                    }
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


def _records(tmp_path: Path) -> Path:
    path = tmp_path / "records.csv"
    pd.DataFrame(
        {
            "quotation_id": ["Q5"],
            "line_item_id": ["L1"],
            "material_name": ["mdf 18 mm"],
            "actual_quantity": [1],
            "actual_unit_price": [33000],
            "allocation_scope": ["perUnit"],
        }
    ).to_csv(path, index=False)
    return path


def test_price_writes_outputs(tmp_path: Path):
    out = tmp_path / "out"
    code = cli.main(["--output-dir", str(out), "price", str(_quotation(tmp_path))])
    assert code == 0
    assert (out / "quotation_Q-5.json").exists()
    lines = pd.read_csv(out / "quotation_Q-5_lines.csv")
    assert lines.loc[0, "LINE_TOTAL"] == pytest.approx(156_000)


def test_reconcile_apply(tmp_path: Path):
    out = tmp_path / "out"
    code = cli.main(
        ["--output-dir", str(out), "reconcile", str(_quotation(tmp_path)), str(_records(tmp_path)), "--apply"]
    )
    assert code == 0
    snapshot = json.loads((out / "quotation_Q-5.json").read_text(encoding="utf-8"))
    assert snapshot["lines"][0]["unit_price"] == pytest.approx(81_000)
    sheets = pd.ExcelFile(out / "quotation_Q-5.xlsx", engine="openpyxl").sheet_names
    assert "RECONCILIATION" in sheets


def test_strict_names_reports_unmatched(tmp_path: Path, caplog):
    caplog.set_level(logging.ERROR)
    code = cli.main(
        [
            "--output-dir",
            str(tmp_path / "out"),
            "reconcile",
            str(_quotation(tmp_path)),
            str(_records(tmp_path)),
            "--strict-names",
        ]
    )
    assert code == 2
    assert "MDF 18mm" in caplog.text


def test_invalid_quotation_exit_code(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"id": "Q", "items": [{"id": "L1", "quantity": 0}]}), encoding="utf-8")
    assert cli.main(["--output-dir", str(tmp_path / "out"), "price", str(path)]) == 2


def test_profit_command(tmp_path: Path):
    labor = tmp_path / "labor.csv"
    labor.write_text("quotation_id,line_item_id,hours,rate\nQ5,L1,10,5000\n", encoding="utf-8")
    out = tmp_path / "out"
    code = cli.main(["--output-dir", str(out), "profit", str(_quotation(tmp_path)), "--labor", str(labor)])
    assert code == 0
    sheets = pd.ExcelFile(out / "quotation_Q-5.xlsx", engine="openpyxl").sheet_names
    assert "PROFITABILITY" in sheets
