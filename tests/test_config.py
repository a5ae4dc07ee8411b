from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from quotest.config import load_config
from quotest.matching import ExactNameMatcher, HeuristicNameMatcher


def test_defaults_without_env():
    config = load_config({}, None)
    assert config.hourly_labor_rate == 12000
    assert config.daily_labor_rate == 64515
    assert config.tax_percent == 19
    assert config.catalog_csv is None
    assert config.output_dir == (config.base_dir / "outputs").resolve()
    assert isinstance(config.matcher(), HeuristicNameMatcher)


def test_env_values_are_coerced(tmp_path: Path):
    env = {
        "HOURLY_LABOR_RATE": "$15,000",
        "DAILY_LABOR_RATE": "80000",
        "DEFAULT_TAX_PERCENT": "16",
        "CATALOG_CSV": str(tmp_path / "catalog.csv"),
        "OUTPUT_DIR": str(tmp_path / "out"),
        "STRICT_NAME_MATCHING": "yes",
        "MIN_MATCH_LENGTH": "4",
        "QUOTEST_VERBOSE": "1",
    }
    config = load_config(env, None)
    assert config.hourly_labor_rate == 15000
    assert config.labor_rates().daily == 80000
    assert config.tax_percent == 16
    assert config.catalog_csv == (tmp_path / "catalog.csv").resolve()
    assert config.output_dir == (tmp_path / "out").resolve()
    assert config.strict_names is True
    assert config.min_match_length == 4
    assert config.verbose is True
    assert isinstance(config.matcher(), ExactNameMatcher)


def test_unparseable_env_falls_back():
    config = load_config({"HOURLY_LABOR_RATE": "lots", "MIN_MATCH_LENGTH": ""}, None)
    assert config.hourly_labor_rate == 12000
    assert config.min_match_length == 3


def test_cli_overrides_env(tmp_path: Path):
    cli = SimpleNamespace(
        catalog=str(tmp_path / "cli.csv"),
        output_dir=str(tmp_path / "cli-out"),
        hourly_rate=9000.0,
        daily_rate=None,
        tax_percent=0.0,
        strict_names=True,
        verbose=False,
    )
    config = load_config({"HOURLY_LABOR_RATE": "15000", "DAILY_LABOR_RATE": "70000"}, cli)
    assert config.catalog_csv == (tmp_path / "cli.csv").resolve()
    assert config.output_dir == (tmp_path / "cli-out").resolve()
    assert config.hourly_labor_rate == 9000
    assert config.daily_labor_rate == 70000
    assert config.tax_percent == 0
    assert config.strict_names is True
