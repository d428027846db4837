"""Analytics thresholds and the static industry benchmark table.

Every constant the analytics functions depend on lives in ``AnalyticsConfig``
so callers (and tests) can vary thresholds without touching module state.
``AnalyticsConfig.from_settings`` applies the ``ANALYTICS_*`` environment
overrides.
"""

from dataclasses import dataclass, field, fields

from treasury.config import Settings
from treasury.schemas.analytics import IndustryBenchmark

# industry -> business segment -> benchmark
DEFAULT_BENCHMARKS: dict[str, dict[str, IndustryBenchmark]] = {
    "technology": {
        "small": IndustryBenchmark(liquidity_ratio=1.2, avg_daily_balance=75_000, volatility=0.12),
        "medium": IndustryBenchmark(liquidity_ratio=1.5, avg_daily_balance=200_000, volatility=0.08),
        "large": IndustryBenchmark(liquidity_ratio=2.0, avg_daily_balance=500_000, volatility=0.06),
    },
    "manufacturing": {
        "small": IndustryBenchmark(liquidity_ratio=1.1, avg_daily_balance=100_000, volatility=0.15),
        "medium": IndustryBenchmark(liquidity_ratio=1.3, avg_daily_balance=300_000, volatility=0.10),
        "large": IndustryBenchmark(liquidity_ratio=1.8, avg_daily_balance=750_000, volatility=0.07),
    },
    "retail": {
        "small": IndustryBenchmark(liquidity_ratio=0.9, avg_daily_balance=50_000, volatility=0.20),
        "medium": IndustryBenchmark(liquidity_ratio=1.1, avg_daily_balance=150_000, volatility=0.15),
        "large": IndustryBenchmark(liquidity_ratio=1.4, avg_daily_balance=400_000, volatility=0.10),
    },
}


# Fields not read from an ``analytics_*`` setting
_NOT_FROM_SETTINGS = {"currency", "benchmarks", "default_benchmark"}


def _default_benchmarks() -> dict[str, dict[str, IndustryBenchmark]]:
    return {
        industry: {segment: benchmark.model_copy() for segment, benchmark in segments.items()}
        for industry, segments in DEFAULT_BENCHMARKS.items()
    }


def _default_benchmark() -> IndustryBenchmark:
    return IndustryBenchmark(liquidity_ratio=1.2, avg_daily_balance=150_000, volatility=0.12)


@dataclass(frozen=True)
class AnalyticsConfig:
    # Overview
    recent_balance_window: int = 30  # rows averaged for average_daily_balance
    idle_buffer_ratio: float = 0.1  # share of outflow kept as required cash

    # Liquidity
    liquidity_window: int = 90  # most recent rows analysed
    idle_balance_threshold: float = 50_000
    idle_activity_threshold: float = 1_000
    minimum_balance_threshold: float = 25_000
    liquidity_base_score: float = 5.0
    # Score ladder: balance, volatility and idle-day cutoffs
    liquidity_high_balance: float = 100_000  # +2
    liquidity_good_balance: float = 50_000  # +1
    liquidity_low_balance: float = 10_000  # -2
    liquidity_low_volatility: float = 0.1  # +1
    liquidity_high_volatility: float = 0.5  # -1
    liquidity_many_idle_days: int = 10  # -1
    liquidity_few_idle_days: int = 3  # +1

    # Vendors / spending patterns
    vendor_limit: int = 50
    pattern_vendor_limit: int = 5
    pattern_high_frequency: int = 30
    pattern_medium_frequency: int = 10
    seasonality_min_months: int = 3

    # Category trend comparison window when no dates are given
    default_window_days: int = 30

    # Forecasting
    forecast_history_months: int = 6
    forecast_min_history_days: int = 30
    forecast_confidence_decay: float = 0.3
    forecast_confidence_floor: float = 0.5
    forecast_low_balance: float = 10_000
    forecast_high_balance: float = 100_000
    forecast_moderate_confidence: float = 0.7

    # Reporting
    currency: str = "USD"

    benchmarks: dict[str, dict[str, IndustryBenchmark]] = field(
        default_factory=_default_benchmarks
    )
    default_benchmark: IndustryBenchmark = field(default_factory=_default_benchmark)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnalyticsConfig":
        """Read every threshold from its ``analytics_<name>`` setting."""
        overrides = {
            f.name: getattr(settings, f"analytics_{f.name}")
            for f in fields(cls)
            if f.name not in _NOT_FROM_SETTINGS
        }
        return cls(currency=settings.reporting_currency, **overrides)

    def benchmark_for(self, industry: str | None, business_segment: str | None) -> IndustryBenchmark:
        """Look up (industry, segment) case-insensitively, falling back to the default triple."""
        segments = self.benchmarks.get((industry or "").lower(), {})
        return segments.get((business_segment or "").lower(), self.default_benchmark)
