"""Cash-flow aggregations over transaction rows.

Pure functions: the caller fetches rows, these functions never touch the
database. Amounts are signed (positive = inflow, negative = outflow).
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from treasury.models.transaction import TransactionType
from treasury.schemas.analytics import (
    AnalyticsOverview,
    CategoryStat,
    PeriodBucket,
    PeriodRange,
    VendorStat,
)
from treasury.services.analytics_config import AnalyticsConfig
from treasury.services.periods import period_key

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class TransactionRow:
    """The columns of a Transaction the analytics functions read."""
    date: date
    amount: float
    type: TransactionType = TransactionType.OTHER
    category: str | None = None
    counterparty: str | None = None
    balance_after: float | None = None

    @classmethod
    def from_record(cls, record) -> "TransactionRow":
        """Build from an ORM Transaction or a result row with the same attribute names."""
        return cls(
            date=record.date,
            amount=float(record.amount),
            type=TransactionType(record.type),
            category=record.category,
            counterparty=record.counterparty,
            balance_after=float(record.balance_after) if record.balance_after is not None else None,
        )


def _chronological(rows: Iterable[TransactionRow]) -> list[TransactionRow]:
    # sorted() is stable: rows sharing a date keep their processing order
    return sorted(rows, key=lambda r: r.date)


def split_flows(rows: Iterable[TransactionRow]) -> tuple[float, float]:
    """Return (inflow, outflow) where outflow is the absolute sum of negative amounts."""
    inflow = 0.0
    outflow = 0.0
    for row in rows:
        if row.amount > 0:
            inflow += row.amount
        elif row.amount < 0:
            outflow += -row.amount
    return inflow, outflow


# ── Overview ──────────────────────────────────────


def compute_overview(
    rows: Sequence[TransactionRow],
    config: AnalyticsConfig,
    start_date: date | None = None,
    end_date: date | None = None,
) -> AnalyticsOverview:
    """Inflow/outflow totals, balance average and liquidity ratios for a row set."""
    total_inflow, total_outflow = split_flows(rows)

    recent = _chronological(rows)[::-1][: config.recent_balance_window]
    if recent:
        average_daily_balance = sum(r.balance_after or 0.0 for r in recent) / len(recent)
    else:
        average_daily_balance = 0.0

    liquidity_ratio = average_daily_balance / total_outflow if total_outflow > 0 else 0.0
    idle_balance = max(0.0, average_daily_balance - total_outflow * config.idle_buffer_ratio)

    return AnalyticsOverview(
        total_inflow=total_inflow,
        total_outflow=total_outflow,
        net_cash_flow=total_inflow - total_outflow,
        average_daily_balance=average_daily_balance,
        liquidity_ratio=liquidity_ratio,
        idle_balance=idle_balance,
        transaction_count=len(rows),
        period=PeriodRange(start_date=start_date, end_date=end_date),
    )


# ── Cash-flow buckets ─────────────────────────────


@dataclass
class _Bucket:
    key: str
    balance: float
    inflow: float = 0.0
    outflow: float = 0.0
    count: int = 0


def group_by_period(rows: Iterable[TransactionRow], period: str) -> list[PeriodBucket]:
    """Group rows into calendar buckets sorted by key.

    A bucket's balance is the ``balance_after`` of its last row that carries
    one; buckets without any balance information keep the previous bucket's
    balance (0 before the first).
    """
    buckets: dict[str, _Bucket] = {}
    last_balance = 0.0

    for row in _chronological(rows):
        key = period_key(row.date, period)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket(key=key, balance=last_balance)

        if row.amount > 0:
            bucket.inflow += row.amount
        else:
            bucket.outflow += abs(row.amount)
        bucket.count += 1
        if row.balance_after is not None:
            bucket.balance = row.balance_after
        last_balance = bucket.balance

    return [
        PeriodBucket(
            period_key=b.key,
            inflow=b.inflow,
            outflow=b.outflow,
            balance=b.balance,
            net_flow=b.inflow - b.outflow,
            transaction_count=b.count,
        )
        for b in sorted(buckets.values(), key=lambda b: b.key)
    ]


# ── Categories ────────────────────────────────────


def _category_totals(rows: Iterable[TransactionRow]) -> tuple[dict[str, float], dict[str, int]]:
    amounts: dict[str, float] = {}
    counts: dict[str, int] = {}
    for row in rows:
        category = row.category or UNCATEGORIZED
        amounts[category] = amounts.get(category, 0.0) + abs(row.amount)
        counts[category] = counts.get(category, 0) + 1
    return amounts, counts


def category_breakdown(
    current_rows: Iterable[TransactionRow],
    previous_rows: Iterable[TransactionRow],
) -> list[CategoryStat]:
    """Per-category totals and shares, with a trend against the previous window."""
    amounts, counts = _category_totals(current_rows)
    previous_amounts, _ = _category_totals(previous_rows)
    total = sum(amounts.values())

    stats = []
    for category, amount in amounts.items():
        previous = previous_amounts.get(category, 0.0)
        if previous == 0:
            trend = "new"
        elif amount > previous:
            trend = "up"
        elif amount < previous:
            trend = "down"
        else:
            trend = "stable"

        stats.append(CategoryStat(
            category=category,
            amount=amount,
            count=counts[category],
            percentage=amount / total * 100 if total > 0 else 0.0,
            trend=trend,
        ))

    stats.sort(key=lambda s: s.amount, reverse=True)
    return stats


# ── Vendors ───────────────────────────────────────


@dataclass
class _VendorTotals:
    amount: float = 0.0
    count: int = 0
    methods: set[TransactionType] = field(default_factory=set)


def _vendor_totals(rows: Iterable[TransactionRow]) -> dict[str, _VendorTotals]:
    vendors: dict[str, _VendorTotals] = {}
    for row in rows:
        if row.amount >= 0 or row.counterparty is None:
            continue
        totals = vendors.setdefault(row.counterparty, _VendorTotals())
        totals.amount += abs(row.amount)
        totals.count += 1
        totals.methods.add(row.type)
    return vendors


def vendor_stats(
    rows: Iterable[TransactionRow],
    limit: int | None = None,
    total: float | None = None,
) -> list[VendorStat]:
    """Outflow spend per counterparty, largest first.

    Percentages are shares of ``total`` when given, otherwise of the spend of
    the returned vendors, so they add up to 100 even when ``limit`` cuts the
    list.
    """
    ranked = sorted(_vendor_totals(rows).items(), key=lambda item: (-item[1].amount, item[0]))
    if limit is not None:
        ranked = ranked[:limit]
    total_spend = total if total is not None else sum(totals.amount for _, totals in ranked)

    return [
        VendorStat(
            vendor_name=name,
            total_amount=totals.amount,
            transaction_count=totals.count,
            percentage=totals.amount / total_spend * 100 if total_spend > 0 else 0.0,
            payment_methods=sorted(totals.methods, key=lambda t: t.value),
        )
        for name, totals in ranked
    ]
