"""Trend series, heuristic cash-flow forecast and seasonal activity patterns.

The forecast is deliberately simple: trailing 30-day means plus an OLS slope,
modulated by a fixed weekly/monthly ripple. It is a planning aid, not a
statistical model.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from treasury.core.exceptions import BadRequestError
from treasury.schemas.analytics import (
    ForecastPoint,
    PeriodBucket,
    SeasonalFactor,
    SeasonalityAnalysis,
    SeasonalPattern,
    SeasonalPeriodStat,
    TrendPoint,
)
from treasury.services.aggregations import TransactionRow, group_by_period
from treasury.services.analytics_config import AnalyticsConfig

TREND_METRICS = ("inflow", "outflow", "balance", "transactions")

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _metric_value(bucket: PeriodBucket, metric: str) -> float:
    if metric == "inflow":
        return bucket.inflow
    if metric == "outflow":
        return bucket.outflow
    if metric == "balance":
        return bucket.balance
    return float(bucket.transaction_count)


def trend_series(rows: Iterable[TransactionRow], metric: str) -> list[TrendPoint]:
    """Monthly values of ``metric`` with the change from the previous month."""
    if metric not in TREND_METRICS:
        raise BadRequestError(f"Invalid metric '{metric}'. Valid options: {', '.join(TREND_METRICS)}")

    points = []
    previous: float | None = None
    for bucket in group_by_period(rows, "monthly"):
        value = _metric_value(bucket, metric)
        change = value - previous if previous is not None else 0.0
        change_percent = change / abs(previous) * 100 if previous else 0.0
        points.append(TrendPoint(
            period=bucket.period_key,
            value=round(value, 2),
            change=round(change, 2),
            change_percent=round(change_percent, 2),
        ))
        previous = value
    return points


# ── Forecast ──────────────────────────────────────


def linear_trend(values: Sequence[float]) -> float:
    """Ordinary least-squares slope of value against index (0 when undefined)."""
    n = len(values)
    if n < 2:
        return 0.0

    mean_x = (n - 1) / 2
    mean_y = sum(values) / n
    numerator = sum((i - mean_x) * (y - mean_y) for i, y in enumerate(values))
    denominator = sum((i - mean_x) ** 2 for i in range(n))
    if denominator == 0:
        return 0.0
    return numerator / denominator


def seasonal_factor(day_offset: int) -> float:
    """Weekly plus monthly ripple around 1."""
    weekly = math.sin(2 * math.pi * day_offset / 7) * 0.1
    monthly = math.sin(2 * math.pi * day_offset / 30) * 0.05
    return 1 + weekly + monthly


def forecast_cash_flow(
    rows: Iterable[TransactionRow],
    forecast_days: int,
    confidence_level: float,
    today: date,
    config: AnalyticsConfig,
) -> list[ForecastPoint]:
    """Project daily inflow, outflow and running balance ``forecast_days`` ahead.

    Returns an empty list when fewer than ``forecast_min_history_days`` daily
    buckets of history exist.
    """
    daily = group_by_period(rows, "daily")
    if len(daily) < config.forecast_min_history_days:
        return []

    recent = daily[-config.forecast_min_history_days:]
    inflows = [b.inflow for b in recent]
    outflows = [b.outflow for b in recent]
    avg_inflow = sum(inflows) / len(inflows)
    avg_outflow = sum(outflows) / len(outflows)
    inflow_trend = linear_trend(inflows)
    outflow_trend = linear_trend(outflows)

    running_balance = recent[-1].balance
    forecast = []
    for day in range(1, forecast_days + 1):
        factor = seasonal_factor(day)
        predicted_inflow = max(0.0, (avg_inflow + inflow_trend * day) * factor)
        predicted_outflow = max(0.0, (avg_outflow + outflow_trend * day) * factor)
        running_balance += predicted_inflow - predicted_outflow

        confidence = confidence_level - (day / forecast_days) * config.forecast_confidence_decay
        forecast.append(ForecastPoint(
            date=today + timedelta(days=day),
            predicted_inflow=round(predicted_inflow, 2),
            predicted_outflow=round(predicted_outflow, 2),
            predicted_balance=round(running_balance, 2),
            confidence=round(max(config.forecast_confidence_floor, confidence), 4),
        ))
    return forecast


# ── Seasonality ───────────────────────────────────


def _period_stats(totals: dict[int, list[float]], names: list[str]) -> list[SeasonalPeriodStat]:
    stats = []
    for index in sorted(totals):
        inflow, outflow, count = totals[index]
        stats.append(SeasonalPeriodStat(
            period=names[index],
            avg_inflow=inflow / count if count else 0.0,
            avg_outflow=outflow / count if count else 0.0,
            transaction_count=int(count),
        ))
    return stats


def _busiest(totals: dict[int, list[float]], names: list[str], top: int = 3) -> list[str]:
    ranked = sorted(
        (index for index, (_, _, count) in totals.items() if count > 0),
        key=lambda index: (-totals[index][2], index),
    )
    return [names[index] for index in ranked[:top]]


def seasonal_patterns(rows: Iterable[TransactionRow]) -> SeasonalityAnalysis:
    """Average flows per calendar month and per weekday, plus the busiest of each."""
    # index -> [inflow, outflow, count]
    monthly: dict[int, list[float]] = {}
    weekly: dict[int, list[float]] = {}

    for row in rows:
        month = row.date.month - 1
        weekday = (row.date.weekday() + 1) % 7  # Sunday = 0
        for totals, index in ((monthly, month), (weekly, weekday)):
            entry = totals.setdefault(index, [0.0, 0.0, 0])
            if row.amount > 0:
                entry[0] += row.amount
            else:
                entry[1] += abs(row.amount)
            entry[2] += 1

    return SeasonalityAnalysis(
        patterns=[
            SeasonalPattern(type="monthly", data=_period_stats(monthly, MONTH_NAMES)),
            SeasonalPattern(type="weekly", data=_period_stats(weekly, DAY_NAMES)),
        ],
        factors=[
            SeasonalFactor(
                name="High Activity Months",
                description="Months with above-average transaction volume",
                value=_busiest(monthly, MONTH_NAMES),
            ),
            SeasonalFactor(
                name="High Activity Days",
                description="Days of week with above-average transaction volume",
                value=_busiest(weekly, DAY_NAMES),
            ),
        ],
    )


def forecast_recommendations(
    forecast: Sequence[ForecastPoint],
    seasonality: SeasonalityAnalysis,
    config: AnalyticsConfig,
) -> list[str]:
    """Plain-language cash-management suggestions derived from a forecast."""
    if not forecast:
        return [
            "Insufficient historical data for detailed recommendations. "
            "Consider accumulating more transaction history."
        ]

    recommendations = []

    if any(p.predicted_balance < config.forecast_low_balance for p in forecast):
        recommendations.append(
            "Potential low balance periods detected in forecast. Consider establishing "
            "credit facilities or adjusting cash management strategy."
        )

    high_days = sum(1 for p in forecast if p.predicted_balance > config.forecast_high_balance)
    if high_days > len(forecast) * 0.5:
        recommendations.append(
            "Consistently high cash balances predicted. Consider investment options "
            "to optimize idle cash returns."
        )

    for factor in seasonality.factors:
        if factor.name == "High Activity Months" and factor.value:
            recommendations.append(
                f"Plan for increased activity during {', '.join(factor.value)} based on historical patterns."
            )

    average_confidence = sum(p.confidence for p in forecast) / len(forecast)
    if average_confidence < config.forecast_moderate_confidence:
        recommendations.append(
            "Forecast confidence is moderate. Monitor actual performance closely "
            "and update predictions regularly."
        )

    return recommendations
