"""AnalyticsService tests against a seeded SQLite database."""

import uuid
from datetime import date, timedelta

import pytest

from treasury.core.exceptions import BadRequestError, NotFoundError
from treasury.schemas.analytics import AnalyticsFilter
from treasury.services.analytics_service import AnalyticsService

TODAY = date.today()

# 60 daily revenue + 60 daily payroll rows + 9 weekly rent rows
TOTAL_ROWS = 129
TOTAL_INFLOW = 60 * 1500
TOTAL_OUTFLOW = 60 * 600 + 9 * 2000


@pytest.fixture
def service(db, config):
    return AnalyticsService(db, config=config)


@pytest.fixture
def concurrent_service(db, config, session_factory):
    return AnalyticsService(db, config=config, session_factory=session_factory)


# ── Client resolution & validation ────────────────


@pytest.mark.parametrize(
    "call",
    [
        lambda svc, cid: svc.get_overview(cid),
        lambda svc, cid: svc.get_cash_flow(cid),
        lambda svc, cid: svc.get_categories(cid),
        lambda svc, cid: svc.get_vendors(cid),
        lambda svc, cid: svc.get_liquidity(cid),
        lambda svc, cid: svc.get_spending_patterns(cid),
        lambda svc, cid: svc.get_trends(cid, "inflow"),
        lambda svc, cid: svc.get_forecast(cid),
        lambda svc, cid: svc.get_benchmarks(cid),
        lambda svc, cid: svc.get_dashboard(cid),
        lambda svc, cid: svc.get_summary(cid),
        lambda svc, cid: svc.export(cid, "json"),
    ],
)
async def test_unknown_client_is_not_found(service, call):
    with pytest.raises(NotFoundError) as exc:
        await call(service, uuid.uuid4())
    assert exc.value.status_code == 404
    assert exc.value.detail == "Client not found"


@pytest.mark.parametrize(
    "call",
    [
        lambda svc, cid: svc.get_cash_flow(cid, "hourly"),
        lambda svc, cid: svc.get_trends(cid, "profit"),
        lambda svc, cid: svc.get_trends(cid, "inflow", "12w"),
        lambda svc, cid: svc.get_trends(cid, "inflow", "0m"),
        lambda svc, cid: svc.get_forecast(cid, "90x"),
        lambda svc, cid: svc.get_forecast(cid, "30d", confidence_level=2.0),
        lambda svc, cid: svc.get_dashboard(cid, "2w"),
        lambda svc, cid: svc.get_dashboard(cid, "30d", "sideways"),
        lambda svc, cid: svc.export(cid, "docx"),
    ],
)
async def test_invalid_parameters_are_bad_requests(service, acme, call):
    with pytest.raises(BadRequestError) as exc:
        await call(service, acme.id)
    assert exc.value.status_code == 400


# ── Single aggregations ───────────────────────────


async def test_overview_totals(service, acme):
    overview = await service.get_overview(acme.id)

    assert overview.transaction_count == TOTAL_ROWS
    assert overview.total_inflow == pytest.approx(TOTAL_INFLOW)
    assert overview.total_outflow == pytest.approx(TOTAL_OUTFLOW)
    assert overview.net_cash_flow == pytest.approx(TOTAL_INFLOW - TOTAL_OUTFLOW)
    assert overview.period.start_date is None


async def test_overview_filters(service, acme):
    filters = AnalyticsFilter(start_date=TODAY - timedelta(days=6), end_date=TODAY, categories=["Payroll"])
    overview = await service.get_overview(acme.id, filters)

    assert overview.transaction_count == 7
    assert overview.total_inflow == 0
    assert overview.total_outflow == pytest.approx(7 * 600)
    assert overview.period.end_date == TODAY


async def test_overview_for_client_without_transactions(service, empty_client):
    overview = await service.get_overview(empty_client.id)
    assert overview.transaction_count == 0
    assert overview.liquidity_ratio == 0


async def test_cash_flow_buckets(service, acme):
    daily = await service.get_cash_flow(acme.id, "daily")
    assert len(daily) == 60
    assert [b.period_key for b in daily] == sorted(b.period_key for b in daily)
    assert sum(b.transaction_count for b in daily) == TOTAL_ROWS

    monthly = await service.get_cash_flow(acme.id, "monthly")
    assert sum(b.inflow for b in monthly) == pytest.approx(TOTAL_INFLOW)


async def test_cash_flow_date_range(service, acme):
    buckets = await service.get_cash_flow(acme.id, "daily", TODAY - timedelta(days=9), TODAY)
    assert len(buckets) == 10
    assert buckets[-1].period_key == TODAY.isoformat()


async def test_categories_compare_with_previous_window(service, acme):
    filters = AnalyticsFilter(start_date=TODAY - timedelta(days=29), end_date=TODAY)
    categories = await service.get_categories(acme.id, filters, today=TODAY)

    assert [c.category for c in categories] == ["Revenue", "Payroll", "Facilities"]
    assert categories[0].amount == pytest.approx(30 * 1500)
    assert sum(c.percentage for c in categories) == pytest.approx(100)
    # 30 days against the 30 days before: daily flows are steady, rent was paid 5 times vs 4
    assert {c.category: c.trend for c in categories} == {
        "Revenue": "stable",
        "Payroll": "stable",
        "Facilities": "up",
    }


async def test_categories_with_no_earlier_history_are_new(service, acme):
    filters = AnalyticsFilter(start_date=TODAY - timedelta(days=59), end_date=TODAY)
    categories = await service.get_categories(acme.id, filters, today=TODAY)
    assert {c.trend for c in categories} == {"new"}


async def test_vendors(service, acme):
    vendors = await service.get_vendors(acme.id)

    assert [v.vendor_name for v in vendors] == ["Payroll Co", "Landlord LLC"]
    assert vendors[0].total_amount == pytest.approx(36_000)
    assert vendors[0].percentage == pytest.approx(200 / 3)
    assert vendors[1].payment_methods == ["WIRE"]


async def test_liquidity_uses_recent_rows(service, acme, config):
    snapshot = await service.get_liquidity(acme.id)

    assert 0 <= snapshot.liquidity_score <= 10
    assert snapshot.minimum_balance > config.minimum_balance_threshold
    assert snapshot.threshold_exceeded is False
    assert snapshot.maximum_balance >= snapshot.average_balance >= snapshot.minimum_balance


async def test_liquidity_for_client_without_transactions(service, empty_client):
    snapshot = await service.get_liquidity(empty_client.id)
    assert snapshot.average_balance == 0
    assert snapshot.liquidity_score == 0


async def test_spending_patterns(service, acme):
    patterns = await service.get_spending_patterns(acme.id)

    assert [p.category for p in patterns] == ["Payroll", "Facilities"]
    assert patterns[0].frequency == "high"
    assert patterns[1].transaction_count == 9
    assert patterns[1].vendors[0].vendor_name == "Landlord LLC"


async def test_transaction_trend_counts_every_row(service, acme):
    points = await service.get_trends(acme.id, "transactions", "3m", today=TODAY)
    assert sum(p.value for p in points) == TOTAL_ROWS
    assert points[0].change == 0


async def test_forecast(service, acme):
    result = await service.get_forecast(acme.id, "30d", 0.9, today=TODAY)

    assert len(result.forecast) == 30
    assert result.forecast[0].date == TODAY + timedelta(days=1)
    confidences = [p.confidence for p in result.forecast]
    assert confidences == sorted(confidences, reverse=True)
    assert [p.type for p in result.seasonality.patterns] == ["monthly", "weekly"]
    assert result.recommendations


async def test_forecast_without_history(service, empty_client):
    result = await service.get_forecast(empty_client.id, today=TODAY)
    assert result.forecast == []
    assert "Insufficient historical data" in result.recommendations[0]


# ── Composite reports ─────────────────────────────


async def test_benchmarks_default_to_client_industry(concurrent_service, acme, config):
    result = await concurrent_service.get_benchmarks(acme.id)

    assert result.industry == "manufacturing"
    assert result.business_segment == "medium"
    assert result.industry_benchmarks == config.benchmark_for("manufacturing", "medium")
    assert 0 <= result.percentile_rank <= 100
    assert result.client_metrics.transaction_count == TOTAL_ROWS
    assert [a.metric for a in result.comparison_areas] == [
        "Liquidity Ratio",
        "Average Daily Balance",
        "Balance Volatility",
    ]


async def test_benchmarks_fall_back_to_default(service, empty_client, config):
    result = await service.get_benchmarks(empty_client.id, industry="aerospace")
    assert result.industry == "aerospace"
    assert result.industry_benchmarks == config.default_benchmark


async def test_dashboard(concurrent_service, acme):
    result = await concurrent_service.get_dashboard(acme.id, "30d", "previous", today=TODAY)

    assert result.period.start_date == TODAY - timedelta(days=30)
    assert result.comparison_period is not None
    assert result.comparison_period.end_date == TODAY - timedelta(days=31)
    assert len(result.kpis) == 6
    assert len(result.charts.cash_flow) <= 30
    assert len(result.charts.categories) <= 10
    assert result.charts.trends


async def test_dashboard_without_comparison(service, acme):
    result = await service.get_dashboard(acme.id, "7d", "none", today=TODAY)
    assert result.comparison_period is None
    assert all(k.trend == "stable" and k.change == 0 for k in result.kpis)


async def test_summary_fans_out(concurrent_service, acme):
    summary = await concurrent_service.get_summary(acme.id, today=TODAY)

    assert summary.metrics.transaction_count == TOTAL_ROWS
    assert len(summary.cash_flow) == 60
    assert summary.liquidity.liquidity_score >= 0
    assert [p.category for p in summary.patterns] == ["Payroll", "Facilities"]
    assert sum(p.value for p in summary.trends.inflow) == pytest.approx(TOTAL_INFLOW)
    assert sum(p.value for p in summary.trends.outflow) == pytest.approx(TOTAL_OUTFLOW)


async def test_summary_sequential_matches_concurrent(service, concurrent_service, acme):
    sequential = await service.get_summary(acme.id, today=TODAY)
    concurrent = await concurrent_service.get_summary(acme.id, today=TODAY)
    assert sequential == concurrent


async def test_fan_out_propagates_first_error(concurrent_service, acme):
    with pytest.raises(BadRequestError):
        await concurrent_service._fan_out(
            lambda svc: svc.get_overview(acme.id),
            lambda svc: svc.get_trends(acme.id, "profit"),
        )


async def test_export_selected_sections(concurrent_service, acme):
    export = await concurrent_service.export(
        acme.id,
        "pdf",
        template="executive_summary",
        sections=["forecasting", "overview"],
        today=TODAY,
    )

    assert export.metadata.sections == ["overview", "forecasting"]
    assert export.metadata.format == "pdf"
    assert export.media_type == "application/pdf"
    assert set(export.data) == {"overview", "forecasting"}
    assert export.data["overview"]["transaction_count"] == TOTAL_ROWS
    assert len(export.data["forecasting"]["forecast"]) == 90


async def test_export_all_sections(service, acme):
    export = await service.export(acme.id, "json", today=TODAY)
    assert set(export.data) == set(export.metadata.sections)
    assert export.data["benchmarking"]["industry"] == "manufacturing"
