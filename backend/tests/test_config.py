"""Settings and AnalyticsConfig tests."""

from dataclasses import fields

from treasury.config import Settings
from treasury.schemas.analytics import IndustryBenchmark
from treasury.services.analytics_config import DEFAULT_BENCHMARKS, AnalyticsConfig


def test_every_threshold_has_a_setting():
    settings = Settings()
    missing = [
        f.name
        for f in fields(AnalyticsConfig)
        if f.name not in {"currency", "benchmarks", "default_benchmark"}
        and not hasattr(settings, f"analytics_{f.name}")
    ]
    assert missing == []


def test_defaults_match(monkeypatch):
    for name in list(Settings.model_fields):
        monkeypatch.delenv(name.upper(), raising=False)
    assert AnalyticsConfig.from_settings(Settings()) == AnalyticsConfig()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ANALYTICS_PATTERN_VENDOR_LIMIT", "3")
    monkeypatch.setenv("ANALYTICS_LIQUIDITY_HIGH_BALANCE", "250000")
    monkeypatch.setenv("ANALYTICS_FORECAST_CONFIDENCE_FLOOR", "0.4")
    monkeypatch.setenv("REPORTING_CURRENCY", "EUR")

    config = AnalyticsConfig.from_settings(Settings())

    assert config.pattern_vendor_limit == 3
    assert config.liquidity_high_balance == 250_000
    assert config.forecast_confidence_floor == 0.4
    assert config.currency == "EUR"


def test_benchmarks_are_not_shared_between_configs():
    first, second = AnalyticsConfig(), AnalyticsConfig()
    first.benchmarks["retail"]["small"] = IndustryBenchmark(liquidity_ratio=9, avg_daily_balance=1, volatility=1)
    first.benchmarks["technology"]["large"].liquidity_ratio = 0

    assert second.benchmark_for("retail", "small").liquidity_ratio == 0.9
    assert DEFAULT_BENCHMARKS["retail"]["small"].liquidity_ratio == 0.9
    assert DEFAULT_BENCHMARKS["technology"]["large"].liquidity_ratio == 2.0


def test_benchmark_lookup_is_case_insensitive():
    config = AnalyticsConfig()
    assert config.benchmark_for("Manufacturing", "LARGE").avg_daily_balance == 750_000
    assert config.benchmark_for(None, None) == config.default_benchmark
