"""Liquidity scoring and spending-pattern analysis."""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from treasury.schemas.analytics import LiquiditySnapshot, SpendingPattern
from treasury.services.aggregations import UNCATEGORIZED, TransactionRow, vendor_stats
from treasury.services.analytics_config import AnalyticsConfig
from treasury.services.periods import period_key


@dataclass(frozen=True)
class DailyActivity:
    day: date
    average_balance: float
    transaction_count: int
    total_activity: float


def daily_activity(rows: Iterable[TransactionRow]) -> list[DailyActivity]:
    """Mean balance and absolute activity per calendar day."""
    balances: dict[date, list[float]] = {}
    activity: dict[date, float] = {}
    for row in rows:
        balances.setdefault(row.date, []).append(row.balance_after or 0.0)
        activity[row.date] = activity.get(row.date, 0.0) + abs(row.amount)

    return [
        DailyActivity(
            day=day,
            average_balance=sum(values) / len(values),
            transaction_count=len(values),
            total_activity=activity[day],
        )
        for day, values in sorted(balances.items())
    ]


def idle_days(days: Iterable[DailyActivity], config: AnalyticsConfig) -> list[DailyActivity]:
    """Days holding a high balance with little movement."""
    return [
        d for d in days
        if d.average_balance > config.idle_balance_threshold
        and d.total_activity < config.idle_activity_threshold
    ]


def liquidity_score(
    average_balance: float,
    volatility: float,
    idle_day_count: int,
    config: AnalyticsConfig,
) -> float:
    """Rule-based 0-10 score: high balance, low volatility and few idle days score best."""
    score = config.liquidity_base_score

    if average_balance > config.liquidity_high_balance:
        score += 2
    elif average_balance > config.liquidity_good_balance:
        score += 1
    elif average_balance < config.liquidity_low_balance:
        score -= 2

    if volatility < config.liquidity_low_volatility:
        score += 1
    elif volatility > config.liquidity_high_volatility:
        score -= 1

    if idle_day_count > config.liquidity_many_idle_days:
        score -= 1
    elif idle_day_count < config.liquidity_few_idle_days:
        score += 1

    return max(0.0, min(10.0, score))


def compute_liquidity(rows: Sequence[TransactionRow], config: AnalyticsConfig) -> LiquiditySnapshot:
    """Balance statistics over the given (most recent) rows."""
    if not rows:
        return LiquiditySnapshot(
            average_balance=0.0,
            minimum_balance=0.0,
            maximum_balance=0.0,
            volatility=0.0,
            idle_days=0,
            liquidity_score=0.0,
            threshold_exceeded=False,
            threshold_amount=0.0,
        )

    balances = [r.balance_after or 0.0 for r in rows]
    average = sum(balances) / len(balances)
    minimum = min(balances)
    maximum = max(balances)

    # Population standard deviation relative to the mean
    variance = sum((b - average) ** 2 for b in balances) / len(balances)
    volatility = math.sqrt(variance) / average if average > 0 else 0.0

    idle = idle_days(daily_activity(rows), config)
    score = liquidity_score(average, volatility, len(idle), config)

    return LiquiditySnapshot(
        average_balance=average,
        minimum_balance=minimum,
        maximum_balance=maximum,
        volatility=round(volatility, 2),
        idle_days=len(idle),
        liquidity_score=round(score, 1),
        threshold_exceeded=minimum < config.minimum_balance_threshold,
        threshold_amount=config.minimum_balance_threshold,
    )


# ── Spending patterns ─────────────────────────────


def _frequency(count: int, config: AnalyticsConfig) -> str:
    if count > config.pattern_high_frequency:
        return "high"
    if count > config.pattern_medium_frequency:
        return "medium"
    return "low"


def _seasonality(rows: Sequence[TransactionRow], config: AnalyticsConfig) -> str:
    """Label how unevenly a category's spend spreads across calendar months.

    Uses the coefficient of variation of monthly totals; with fewer than
    ``seasonality_min_months`` months of data the label stays "medium".
    """
    monthly: dict[str, float] = {}
    for row in rows:
        key = period_key(row.date, "monthly")
        monthly[key] = monthly.get(key, 0.0) + abs(row.amount)

    if len(monthly) < config.seasonality_min_months:
        return "medium"

    totals = list(monthly.values())
    mean = sum(totals) / len(totals)
    if mean == 0:
        return "medium"
    cv = math.sqrt(sum((t - mean) ** 2 for t in totals) / len(totals)) / mean
    if cv > 0.5:
        return "high"
    if cv > 0.2:
        return "medium"
    return "low"


def spending_patterns(rows: Iterable[TransactionRow], config: AnalyticsConfig) -> list[SpendingPattern]:
    """Per-category spending profile over outflow rows, largest spend first."""
    by_category: dict[str, list[TransactionRow]] = {}
    for row in rows:
        if row.amount >= 0:
            continue
        by_category.setdefault(row.category or UNCATEGORIZED, []).append(row)

    patterns = []
    for category, category_rows in by_category.items():
        amounts = [abs(r.amount) for r in category_rows]
        total = sum(amounts)
        patterns.append(SpendingPattern(
            category=category,
            subcategory=category,
            total_amount=total,
            transaction_count=len(amounts),
            average_amount=total / len(amounts),
            frequency=_frequency(len(amounts), config),
            seasonality=_seasonality(category_rows, config),
            vendors=vendor_stats(category_rows, limit=config.pattern_vendor_limit, total=total),
        ))

    patterns.sort(key=lambda p: p.total_amount, reverse=True)
    return patterns
