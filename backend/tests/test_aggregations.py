"""Cash-flow aggregation tests (pure functions, no database)."""

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from treasury.models.transaction import TransactionType
from treasury.schemas.analytics import AnalyticsFilter
from treasury.services.aggregations import (
    TransactionRow,
    category_breakdown,
    compute_overview,
    group_by_period,
    split_flows,
    vendor_stats,
)


def tx(day, amount, **kwargs):
    return TransactionRow(date=day, amount=amount, **kwargs)


@pytest.fixture
def january():
    return [
        tx(date(2026, 1, 5), 1000, category="Revenue", balance_after=6000),
        tx(date(2026, 1, 6), -400, category="Payroll", counterparty="Payroll Co",
           type=TransactionType.ACH, balance_after=5600),
        tx(date(2026, 1, 7), -100, category="Software", counterparty="SaaS Inc",
           type=TransactionType.DEBIT, balance_after=5500),
    ]


# ── Overview ──────────────────────────────────────


def test_overview_totals(january, config):
    overview = compute_overview(january, config)
    assert overview.total_inflow == 1000
    assert overview.total_outflow == 500
    assert overview.net_cash_flow == 500
    assert overview.transaction_count == 3
    assert overview.average_daily_balance == pytest.approx((6000 + 5600 + 5500) / 3)
    assert overview.liquidity_ratio == pytest.approx(overview.average_daily_balance / 500)


def test_overview_of_nothing_is_zero(config):
    overview = compute_overview([], config, date(2026, 1, 1), date(2026, 1, 31))
    assert overview.total_inflow == 0
    assert overview.total_outflow == 0
    assert overview.liquidity_ratio == 0
    assert overview.idle_balance == 0
    assert overview.transaction_count == 0
    assert overview.period.start_date == date(2026, 1, 1)


def test_overview_average_balance_uses_most_recent_rows(config):
    rows = [tx(date(2026, 1, d), -1, balance_after=float(d)) for d in range(1, 31)]
    rows += [tx(date(2026, 2, 1) + timedelta(days=i), -1, balance_after=100.0) for i in range(30)]
    overview = compute_overview(rows, config)
    assert overview.average_daily_balance == 100.0


def test_idle_balance_never_negative(config):
    rows = [tx(date(2026, 1, 1), -1_000_000, balance_after=10)]
    assert compute_overview(rows, config).idle_balance == 0


def test_split_flows_ignores_zero_amounts():
    assert split_flows([tx(date(2026, 1, 1), 0), tx(date(2026, 1, 1), 5)]) == (5, 0)


# ── Buckets ───────────────────────────────────────


def test_monthly_buckets_sorted_and_balanced(january):
    february = [tx(date(2026, 2, 2), 250, balance_after=5750)]
    buckets = group_by_period(february + january, "monthly")

    assert [b.period_key for b in buckets] == ["2026-01", "2026-02"]
    jan = buckets[0]
    assert jan.inflow == 1000
    assert jan.outflow == 500
    assert jan.net_flow == 500
    assert jan.balance == 5500
    assert jan.transaction_count == 3


def test_bucket_without_balances_carries_previous_balance():
    rows = [
        tx(date(2026, 1, 1), 100, balance_after=900),
        tx(date(2026, 1, 2), 50),
        tx(date(2026, 1, 3), -20, balance_after=0),
    ]
    buckets = group_by_period(rows, "daily")
    assert [b.balance for b in buckets] == [900, 900, 0]


def test_weekly_keys_start_on_sunday():
    rows = [tx(date(2026, 10, 14), 10), tx(date(2026, 10, 17), 10), tx(date(2026, 10, 18), 10)]
    buckets = group_by_period(rows, "weekly")
    assert [(b.period_key, b.transaction_count) for b in buckets] == [
        ("2026-10-11", 2),
        ("2026-10-18", 1),
    ]


def test_grouping_is_idempotent(january):
    assert group_by_period(january, "daily") == group_by_period(list(january), "daily")


def test_grouping_empty_rows():
    assert group_by_period([], "yearly") == []


# ── Categories ────────────────────────────────────


def test_category_breakdown_trends_and_shares(january):
    previous = [
        tx(date(2025, 12, 5), 800, category="Revenue"),
        tx(date(2025, 12, 6), -400, category="Payroll"),
        tx(date(2025, 12, 7), -300, category="Software"),
    ]
    current = january + [tx(date(2026, 1, 8), -50, category="Travel")]
    stats = {s.category: s for s in category_breakdown(current, previous)}

    assert stats["Revenue"].trend == "up"
    assert stats["Payroll"].trend == "stable"
    assert stats["Software"].trend == "down"
    assert stats["Travel"].trend == "new"
    assert sum(s.percentage for s in stats.values()) == pytest.approx(100)


def test_category_breakdown_sorted_and_uncategorized():
    rows = [tx(date(2026, 1, 1), -10), tx(date(2026, 1, 2), -90, category="Rent")]
    stats = category_breakdown(rows, [])
    assert [s.category for s in stats] == ["Rent", "Uncategorized"]


def test_category_percentages_zero_when_total_zero():
    stats = category_breakdown([tx(date(2026, 1, 1), 0, category="Adjustments")], [])
    assert stats[0].percentage == 0


# ── Vendors ───────────────────────────────────────


def test_vendor_stats_ignores_inflows_and_missing_counterparty():
    rows = [
        tx(date(2026, 1, 1), -300, counterparty="Acme Supplies", type=TransactionType.CHECK),
        tx(date(2026, 1, 2), -100, counterparty="Acme Supplies", type=TransactionType.ACH),
        tx(date(2026, 1, 3), -100, counterparty="Bolt Freight", type=TransactionType.WIRE),
        tx(date(2026, 1, 4), 999, counterparty="Customer A"),
        tx(date(2026, 1, 5), -50),
    ]
    stats = vendor_stats(rows)

    assert [s.vendor_name for s in stats] == ["Acme Supplies", "Bolt Freight"]
    assert stats[0].total_amount == 400
    assert stats[0].transaction_count == 2
    assert stats[0].payment_methods == [TransactionType.ACH, TransactionType.CHECK]
    assert stats[0].percentage == pytest.approx(80)


def test_vendor_limit_shares_cover_returned_vendors():
    rows = [tx(date(2026, 1, d), -10.0 * d, counterparty=f"Vendor {d:02d}") for d in range(1, 11)]
    stats = vendor_stats(rows, limit=3)
    assert [s.vendor_name for s in stats] == ["Vendor 10", "Vendor 09", "Vendor 08"]
    assert stats[0].percentage == pytest.approx(100 / 270 * 100)
    assert sum(s.percentage for s in stats) == pytest.approx(100)


def test_vendor_limit_with_equal_spend():
    rows = [tx(date(2026, 1, 1), -10, counterparty=f"Vendor {i:03d}") for i in range(100)]
    stats = vendor_stats(rows, limit=50)
    assert len(stats) == 50
    assert stats[0].vendor_name == "Vendor 000"
    assert all(s.percentage == pytest.approx(2) for s in stats)


def test_filter_rejects_inverted_dates():
    with pytest.raises(ValidationError):
        AnalyticsFilter(start_date=date(2026, 10, 19), end_date=date(2026, 10, 1))
    assert AnalyticsFilter(start_date=date(2026, 10, 1), end_date=date(2026, 10, 1)).end_date == date(2026, 10, 1)
