"""Client-vs-industry benchmark scoring."""

from treasury.schemas.analytics import (
    AnalyticsOverview,
    ComparisonArea,
    IndustryBenchmark,
    LiquiditySnapshot,
)


def _ladder(value: float, cutoffs: tuple[float, float, float], higher_is_better: bool = True) -> int:
    """Score 25/20/15/10 depending on which cutoff ``value`` clears first."""
    for points, cutoff in zip((25, 20, 15), cutoffs):
        if (value >= cutoff) if higher_is_better else (value <= cutoff):
            return points
    return 10


def percentile_rank(
    overview: AnalyticsOverview,
    liquidity: LiquiditySnapshot,
    benchmark: IndustryBenchmark,
) -> int:
    """Weighted heuristic rank in [0, 100]; not a true percentile."""
    scores = [
        _ladder(
            overview.liquidity_ratio,
            (benchmark.liquidity_ratio * 1.2, benchmark.liquidity_ratio, benchmark.liquidity_ratio * 0.8),
        ),
        _ladder(
            overview.average_daily_balance,
            (benchmark.avg_daily_balance * 1.5, benchmark.avg_daily_balance, benchmark.avg_daily_balance * 0.7),
        ),
        _ladder(
            liquidity.volatility,
            (benchmark.volatility * 0.7, benchmark.volatility, benchmark.volatility * 1.3),
            higher_is_better=False,
        ),
    ]
    rank = round(sum(scores) / len(scores) / 25 * 100)
    return max(0, min(100, rank))


def comparison_areas(
    overview: AnalyticsOverview,
    liquidity: LiquiditySnapshot,
    benchmark: IndustryBenchmark,
) -> list[ComparisonArea]:
    def performance(better: bool) -> str:
        return "above_average" if better else "below_average"

    return [
        ComparisonArea(
            metric="Liquidity Ratio",
            client_value=overview.liquidity_ratio,
            benchmark_value=benchmark.liquidity_ratio,
            performance=performance(overview.liquidity_ratio >= benchmark.liquidity_ratio),
        ),
        ComparisonArea(
            metric="Average Daily Balance",
            client_value=overview.average_daily_balance,
            benchmark_value=benchmark.avg_daily_balance,
            performance=performance(overview.average_daily_balance >= benchmark.avg_daily_balance),
        ),
        ComparisonArea(
            metric="Balance Volatility",
            client_value=liquidity.volatility,
            benchmark_value=benchmark.volatility,
            performance=performance(liquidity.volatility <= benchmark.volatility),
        ),
    ]
