import argparse
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .config import Config
from .config import load_config as load_runtime_config
from .errors import QuotationError
from .loaders import load_catalog, load_cost_records, load_expense_records, load_labor_records, load_quotation
from .profitability import summarize_profitability
from .quotation import price_quotation
from .reconciliation import apply_real_costs, reconcile_quotation
from .reporting import make_summary_text, profitability_frame, reconciliation_frame
from .writer import write_outputs

BASE_DIR = Path(__file__).resolve().parents[2]

load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)


def _catalog(runtime_cfg: Config):
    if runtime_cfg.catalog_csv is None:
        return None
    return load_catalog(runtime_cfg.catalog_csv)


def _price(args: argparse.Namespace, runtime_cfg: Config) -> int:
    quotation = load_quotation(Path(args.quotation), default_tax_percent=runtime_cfg.tax_percent)
    priced = price_quotation(quotation, catalog=_catalog(runtime_cfg), rates=runtime_cfg.labor_rates())
    logger.info(make_summary_text(priced))
    write_outputs(priced, runtime_cfg.output_dir)
    return 0


def _reconcile(args: argparse.Namespace, runtime_cfg: Config) -> int:
    quotation = load_quotation(Path(args.quotation), default_tax_percent=runtime_cfg.tax_percent)
    records = load_expense_records(Path(args.records))
    matcher = runtime_cfg.matcher()
    catalog = _catalog(runtime_cfg)
    rates = runtime_cfg.labor_rates()

    results = reconcile_quotation(quotation, records, matcher)
    report = reconciliation_frame(results)
    if report.empty:
        logger.info("No manual line items to reconcile")
    else:
        logger.info("%s", report.to_string(index=False))

    if args.apply:
        applied = apply_real_costs(quotation, records, matcher, catalog=catalog, rates=rates)
        if runtime_cfg.strict_names:
            applied.raise_for_unmatched()
        priced = applied.priced
        logger.info(make_summary_text(priced))
    else:
        if runtime_cfg.strict_names:
            for rec in results.values():
                rec.raise_for_unmatched()
        priced = price_quotation(quotation, catalog=catalog, rates=rates)

    write_outputs(priced, runtime_cfg.output_dir, reconciliation=results)
    return 0


def _profit(args: argparse.Namespace, runtime_cfg: Config) -> int:
    quotation = load_quotation(Path(args.quotation), default_tax_percent=runtime_cfg.tax_percent)
    priced = price_quotation(quotation, catalog=_catalog(runtime_cfg), rates=runtime_cfg.labor_rates())
    summary = summarize_profitability(
        priced,
        material_records=load_expense_records(Path(args.materials)) if args.materials else (),
        labor_records=load_labor_records(Path(args.labor)) if args.labor else (),
        petty_records=load_cost_records(Path(args.petty)) if args.petty else (),
        transport_records=load_cost_records(Path(args.transport)) if args.transport else (),
    )
    logger.info("%s", profitability_frame(summary).to_string(index=False))
    write_outputs(priced, runtime_cfg.output_dir, profitability=summary)
    return 0


def run(args: argparse.Namespace, runtime_cfg: Config) -> int:
    handlers = {"price": _price, "reconcile": _reconcile, "profit": _profit}
    return handlers[args.command](args, runtime_cfg)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Price furniture quotations and reconcile real costs")
    parser.add_argument("--catalog", help="Catalog products CSV")
    parser.add_argument("--output-dir", help="Directory for generated outputs")
    parser.add_argument("--hourly-rate", type=float, help="Override the hourly labor rate")
    parser.add_argument("--daily-rate", type=float, help="Override the daily labor rate")
    parser.add_argument("--tax-percent", type=float, help="Tax applied when a quotation omits one")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    sub = parser.add_subparsers(dest="command", required=True)

    price = sub.add_parser("price", help="Price a quotation and write outputs")
    price.add_argument("quotation", help="Quotation JSON file")

    reconcile = sub.add_parser("reconcile", help="Compare budgeted materials with recorded purchases")
    reconcile.add_argument("quotation", help="Quotation JSON file")
    reconcile.add_argument("records", help="Real expense records (CSV or XLSX)")
    reconcile.add_argument("--apply", action="store_true", help="Write real costs back into the quotation")
    reconcile.add_argument(
        "--strict-names",
        action="store_true",
        help="Match material names exactly and fail when a budgeted material has no record",
    )

    profit = sub.add_parser("profit", help="Budget versus real profitability")
    profit.add_argument("quotation", help="Quotation JSON file")
    profit.add_argument("--materials", help="Real material purchases (CSV or XLSX)")
    profit.add_argument("--labor", help="Real labor records (CSV or XLSX)")
    profit.add_argument("--petty", help="Petty-cash records (CSV or XLSX)")
    profit.add_argument("--transport", help="Transport records (CSV or XLSX)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    runtime_cfg = load_runtime_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        return run(args, runtime_cfg)
    except QuotationError as exc:
        logger.error("%s", exc)
        return 2
    except Exception:  # pragma: no cover - defensive
        logger.exception("Fatal error while processing quotation")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
