from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Mapping, Optional

from .matching import ExactNameMatcher, HeuristicNameMatcher, NameMatcher
from .pricing import DAILY_LABOR_RATE, HOURLY_LABOR_RATE, LaborRates
from .quotation import DEFAULT_TAX_PERCENT


_BOOLEAN_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    catalog_csv: Optional[Path]
    output_dir: Path
    hourly_labor_rate: float
    daily_labor_rate: float
    tax_percent: float
    strict_names: bool = False
    min_match_length: int = 3
    verbose: bool = False

    def labor_rates(self) -> LaborRates:
        return LaborRates(hourly=self.hourly_labor_rate, daily=self.daily_labor_rate)

    def matcher(self) -> NameMatcher:
        if self.strict_names:
            return ExactNameMatcher()
        return HeuristicNameMatcher(min_length=self.min_match_length)


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _to_int(value: object | None) -> Optional[int]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def _to_float(value: object | None) -> Optional[float]:
    if value is None:
        return None
    text = str(value).replace("$", "").replace(",", "").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _flag(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options."""

    base_dir = Path(__file__).resolve().parents[2]
    default_output_dir = (base_dir / "outputs").resolve()

    catalog_csv = _to_path(env.get("CATALOG_CSV"))
    output_dir = _to_path(env.get("OUTPUT_DIR")) or default_output_dir
    hourly = _to_float(env.get("HOURLY_LABOR_RATE"))
    daily = _to_float(env.get("DAILY_LABOR_RATE"))
    tax_percent = _to_float(env.get("DEFAULT_TAX_PERCENT"))
    strict_names = _flag(env.get("STRICT_NAME_MATCHING"))
    min_match_length = _to_int(env.get("MIN_MATCH_LENGTH")) or 3
    verbose = _flag(env.get("QUOTEST_VERBOSE"))

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "catalog", None):
        catalog_csv = _to_path(cli_ns.catalog)
    if getattr(cli_ns, "output_dir", None):
        output_dir = _to_path(cli_ns.output_dir) or output_dir
    if getattr(cli_ns, "hourly_rate", None) is not None:
        hourly = float(cli_ns.hourly_rate)
    if getattr(cli_ns, "daily_rate", None) is not None:
        daily = float(cli_ns.daily_rate)
    if getattr(cli_ns, "tax_percent", None) is not None:
        tax_percent = float(cli_ns.tax_percent)
    if getattr(cli_ns, "strict_names", False):
        strict_names = True
    if getattr(cli_ns, "verbose", False):
        verbose = bool(cli_ns.verbose)

    return Config(
        base_dir=base_dir,
        catalog_csv=catalog_csv,
        output_dir=output_dir,
        hourly_labor_rate=hourly if hourly is not None else HOURLY_LABOR_RATE,
        daily_labor_rate=daily if daily is not None else DAILY_LABOR_RATE,
        tax_percent=tax_percent if tax_percent is not None else DEFAULT_TAX_PERCENT,
        strict_names=strict_names,
        min_match_length=max(1, min_match_length),
        verbose=verbose,
    )


__all__ = ["Config", "load_config"]
