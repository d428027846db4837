"""Analytics service: fetches transaction rows and runs the aggregations.

Each public method resolves the client first (404 when unknown), validates its
parameters (400), selects the rows it needs and hands them to the pure
functions in ``aggregations``, ``liquidity``, ``forecasting``,
``benchmarking`` and ``dashboard``.

Composite reports (summary, dashboard, benchmarks, export) fan out their
independent sub-aggregations concurrently. An ``AsyncSession`` cannot be
shared between concurrent tasks, so each branch opens its own session from
``session_factory``; without a factory the branches run one after another on
``db``.
"""

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from treasury.core.exceptions import BadRequestError, NotFoundError, ValidationError
from treasury.models.client import Client
from treasury.models.transaction import Transaction
from treasury.schemas.analytics import (
    AnalyticsFilter,
    AnalyticsOverview,
    AnalyticsSummary,
    BenchmarkClientMetrics,
    BenchmarkResponse,
    CategoryStat,
    DashboardCharts,
    DashboardResponse,
    ExportResponse,
    ForecastResponse,
    LiquiditySnapshot,
    PeriodBucket,
    PeriodRange,
    SpendingPattern,
    SummaryTrends,
    TrendPoint,
    VendorStat,
)
from treasury.services.aggregations import (
    TransactionRow,
    category_breakdown,
    compute_overview,
    group_by_period,
    vendor_stats,
)
from treasury.services.analytics_config import AnalyticsConfig
from treasury.services.benchmarking import comparison_areas, percentile_rank
from treasury.services.dashboard import build_kpis
from treasury.services.export import build_export, validate_export_request
from treasury.services.forecasting import (
    TREND_METRICS,
    forecast_cash_flow,
    forecast_recommendations,
    seasonal_patterns,
    trend_series,
)
from treasury.services.liquidity import compute_liquidity, spending_patterns
from treasury.services.periods import (
    PERIODS,
    dashboard_windows,
    parse_forecast_days,
    parse_lookback,
    previous_window,
    shift_months,
)

logger = structlog.get_logger()

Job = Callable[["AnalyticsService"], Awaitable[Any]]

_SUMMARY_SECTIONS = {"overview", "cashflow", "categories", "liquidity", "patterns", "trends"}


class AnalyticsService:
    def __init__(
        self,
        db: AsyncSession,
        config: AnalyticsConfig | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.db = db
        self.config = config or AnalyticsConfig()
        self.session_factory = session_factory

    # ── Row access ────────────────────────────────

    async def _require_client(self, client_id: uuid.UUID) -> Client:
        client = await self.db.get(Client, client_id)
        if client is None:
            logger.warning("client_not_found", client_id=str(client_id))
            raise NotFoundError("Client")
        return client

    def _base_filters(self, client_id: uuid.UUID, filters: AnalyticsFilter | None = None) -> list:
        """Return a list of WHERE clauses (reusable)."""
        clauses = [Transaction.client_id == client_id]
        if filters is None:
            return clauses

        if filters.start_date:
            clauses.append(Transaction.date >= filters.start_date)
        if filters.end_date:
            clauses.append(Transaction.date <= filters.end_date)
        if filters.account_id:
            clauses.append(Transaction.account_id == filters.account_id)
        if filters.categories:
            clauses.append(Transaction.category.in_(filters.categories))
        if filters.transaction_types:
            clauses.append(Transaction.type.in_(filters.transaction_types))
        if filters.min_amount is not None:
            clauses.append(Transaction.amount >= filters.min_amount)
        if filters.max_amount is not None:
            clauses.append(Transaction.amount <= filters.max_amount)
        return clauses

    async def _fetch_rows(
        self,
        clauses: Sequence,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[TransactionRow]:
        """Fetch rows matching ``clauses``, ordered by (date, id)."""
        query = select(
            Transaction.date,
            Transaction.amount,
            Transaction.type,
            Transaction.category,
            Transaction.counterparty,
            Transaction.balance_after,
        ).where(*clauses)

        if newest_first:
            query = query.order_by(Transaction.date.desc(), Transaction.id.desc())
        else:
            query = query.order_by(Transaction.date.asc(), Transaction.id.asc())
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return [TransactionRow.from_record(row) for row in result.all()]

    async def _fan_out(self, *jobs: Job) -> list[Any]:
        """Run independent jobs concurrently, each on its own session.

        The first exception propagates after the remaining jobs are cancelled.
        """
        if self.session_factory is None:
            return [await job(self) for job in jobs]

        async def run(job: Job) -> Any:
            async with self.session_factory() as session:
                worker = AnalyticsService(session, config=self.config)
                return await job(worker)

        tasks = [asyncio.create_task(run(job)) for job in jobs]
        try:
            return list(await asyncio.gather(*tasks))
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    # ── Aggregations ──────────────────────────────

    async def get_overview(
        self,
        client_id: uuid.UUID,
        filters: AnalyticsFilter | None = None,
    ) -> AnalyticsOverview:
        """Inflow/outflow totals, balance average and liquidity ratios."""
        await self._require_client(client_id)
        filters = filters or AnalyticsFilter()

        rows = await self._fetch_rows(self._base_filters(client_id, filters))
        return compute_overview(rows, self.config, filters.start_date, filters.end_date)

    async def get_cash_flow(
        self,
        client_id: uuid.UUID,
        period: str = "daily",
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[PeriodBucket]:
        """Cash-flow buckets per day, week (Sunday start), month or year."""
        await self._require_client(client_id)
        if period not in PERIODS:
            raise BadRequestError(f"Invalid period '{period}'. Valid options: {', '.join(PERIODS)}")
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        filters = AnalyticsFilter(start_date=start_date, end_date=end_date)
        rows = await self._fetch_rows(self._base_filters(client_id, filters))
        return group_by_period(rows, period)

    async def get_categories(
        self,
        client_id: uuid.UUID,
        filters: AnalyticsFilter | None = None,
        today: date | None = None,
    ) -> list[CategoryStat]:
        """Category totals with a trend against the preceding window of equal length."""
        await self._require_client(client_id)
        filters = filters or AnalyticsFilter()
        today = today or date.today()

        current_rows = await self._fetch_rows(self._base_filters(client_id, filters))

        window_end = filters.end_date or today
        window_start = filters.start_date or window_end - timedelta(days=self.config.default_window_days)
        previous_start, previous_end = previous_window(window_start, window_end)
        previous_filters = filters.model_copy(update={"start_date": previous_start, "end_date": previous_end})
        previous_rows = await self._fetch_rows(self._base_filters(client_id, previous_filters))

        return category_breakdown(current_rows, previous_rows)

    async def get_vendors(self, client_id: uuid.UUID) -> list[VendorStat]:
        """Top vendors by outflow spend."""
        await self._require_client(client_id)
        rows = await self._fetch_rows([
            Transaction.client_id == client_id,
            Transaction.amount < 0,
            Transaction.counterparty.is_not(None),
        ])
        return vendor_stats(rows, limit=self.config.vendor_limit)

    async def get_liquidity(self, client_id: uuid.UUID) -> LiquiditySnapshot:
        """Balance statistics over the most recent transactions, ignoring filters."""
        await self._require_client(client_id)
        rows = await self._fetch_rows(
            [Transaction.client_id == client_id],
            newest_first=True,
            limit=self.config.liquidity_window,
        )
        return compute_liquidity(rows, self.config)

    async def get_spending_patterns(self, client_id: uuid.UUID) -> list[SpendingPattern]:
        """Per-category spending profile over every outflow."""
        await self._require_client(client_id)
        rows = await self._fetch_rows([Transaction.client_id == client_id, Transaction.amount < 0])
        return spending_patterns(rows, self.config)

    async def get_trends(
        self,
        client_id: uuid.UUID,
        metric: str,
        period: str = "12m",
        today: date | None = None,
    ) -> list[TrendPoint]:
        """Monthly series of a metric over a ``"<N>m"`` lookback."""
        await self._require_client(client_id)
        if metric not in TREND_METRICS:
            raise BadRequestError(f"Invalid metric '{metric}'. Valid options: {', '.join(TREND_METRICS)}")
        months = parse_lookback(period)
        start = shift_months(today or date.today(), -months)

        rows = await self._fetch_rows([Transaction.client_id == client_id, Transaction.date >= start])
        return trend_series(rows, metric)

    async def get_forecast(
        self,
        client_id: uuid.UUID,
        forecast_period: str = "90d",
        confidence_level: float = 0.85,
        today: date | None = None,
    ) -> ForecastResponse:
        """Heuristic daily forecast plus seasonal patterns and recommendations."""
        await self._require_client(client_id)
        days = parse_forecast_days(forecast_period)
        if not 0.1 <= confidence_level <= 1.0:
            raise BadRequestError("Confidence level must be between 0.1 and 1.0")
        today = today or date.today()

        history_start = shift_months(today, -self.config.forecast_history_months)
        rows = await self._fetch_rows([Transaction.client_id == client_id, Transaction.date >= history_start])

        forecast = forecast_cash_flow(rows, days, confidence_level, today, self.config)
        seasonality = seasonal_patterns(rows)
        logger.info(
            "analytics_forecast",
            client_id=str(client_id),
            history_rows=len(rows),
            forecast_days=len(forecast),
        )
        return ForecastResponse(
            forecast=forecast,
            seasonality=seasonality,
            recommendations=forecast_recommendations(forecast, seasonality, self.config),
        )

    # ── Composite reports ─────────────────────────

    async def get_benchmarks(
        self,
        client_id: uuid.UUID,
        industry: str | None = None,
        business_segment: str | None = None,
    ) -> BenchmarkResponse:
        """Compare the client's overview and liquidity with its industry benchmark."""
        client = await self._require_client(client_id)
        target_industry = industry or client.industry
        target_segment = business_segment or client.business_segment

        overview, liquidity = await self._fan_out(
            lambda svc: svc.get_overview(client_id),
            lambda svc: svc.get_liquidity(client_id),
        )
        benchmark = self.config.benchmark_for(target_industry, target_segment)

        return BenchmarkResponse(
            industry=target_industry,
            business_segment=target_segment,
            client_metrics=BenchmarkClientMetrics(**overview.model_dump(), liquidity=liquidity),
            industry_benchmarks=benchmark,
            percentile_rank=percentile_rank(overview, liquidity, benchmark),
            comparison_areas=comparison_areas(overview, liquidity, benchmark),
        )

    async def get_dashboard(
        self,
        client_id: uuid.UUID,
        date_range: str = "30d",
        compare_mode: str = "previous",
        today: date | None = None,
    ) -> DashboardResponse:
        """KPIs and chart series for a dashboard range, optionally compared to another window."""
        await self._require_client(client_id)
        today = today or date.today()
        (start, end), comparison = dashboard_windows(date_range, compare_mode, today)
        started = time.perf_counter()

        current_filters = AnalyticsFilter(start_date=start, end_date=end)
        jobs: list[Job] = [
            lambda svc: svc.get_overview(client_id, current_filters),
            lambda svc: svc.get_cash_flow(client_id, "daily", start, end),
            lambda svc: svc.get_categories(client_id, current_filters, today=today),
            lambda svc: svc.get_trends(client_id, "balance", "3m", today=today),
        ]
        if comparison is not None:
            comparison_filters = AnalyticsFilter(start_date=comparison[0], end_date=comparison[1])
            jobs.append(lambda svc: svc.get_overview(client_id, comparison_filters))

        results = await self._fan_out(*jobs)
        metrics, cash_flow, categories, balance_trend = results[:4]
        comparison_metrics = results[4] if comparison is not None else None

        logger.info(
            "analytics_dashboard",
            client_id=str(client_id),
            date_range=date_range,
            compare_mode=compare_mode,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return DashboardResponse(
            metrics=metrics,
            charts=DashboardCharts(
                cash_flow=cash_flow[-30:],
                categories=categories[:10],
                trends=balance_trend,
            ),
            kpis=build_kpis(metrics, comparison_metrics, self.config.currency),
            period=PeriodRange(start_date=start, end_date=end),
            comparison_period=(
                PeriodRange(start_date=comparison[0], end_date=comparison[1]) if comparison else None
            ),
        )

    async def get_summary(
        self,
        client_id: uuid.UUID,
        filters: AnalyticsFilter | None = None,
        today: date | None = None,
    ) -> AnalyticsSummary:
        """Overview, cash flow, categories, liquidity, patterns and 12-month trends in one call."""
        await self._require_client(client_id)
        filters = filters or AnalyticsFilter()
        today = today or date.today()
        started = time.perf_counter()

        (
            metrics,
            cash_flow,
            categories,
            liquidity,
            patterns,
            inflow_trend,
            outflow_trend,
            balance_trend,
        ) = await self._fan_out(
            lambda svc: svc.get_overview(client_id, filters),
            lambda svc: svc.get_cash_flow(client_id, "daily"),
            lambda svc: svc.get_categories(client_id, filters, today=today),
            lambda svc: svc.get_liquidity(client_id),
            lambda svc: svc.get_spending_patterns(client_id),
            lambda svc: svc.get_trends(client_id, "inflow", "12m", today=today),
            lambda svc: svc.get_trends(client_id, "outflow", "12m", today=today),
            lambda svc: svc.get_trends(client_id, "balance", "12m", today=today),
        )

        logger.info(
            "analytics_summary",
            client_id=str(client_id),
            transaction_count=metrics.transaction_count,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return AnalyticsSummary(
            metrics=metrics,
            cash_flow=cash_flow,
            categories=categories,
            liquidity=liquidity,
            patterns=patterns,
            trends=SummaryTrends(inflow=inflow_trend, outflow=outflow_trend, balance=balance_trend),
        )

    async def export(
        self,
        client_id: uuid.UUID,
        export_format: str,
        filters: AnalyticsFilter | None = None,
        template: str | None = None,
        sections: Sequence[str] | None = None,
        today: date | None = None,
    ) -> ExportResponse:
        """Package the selected analytics sections into an export envelope."""
        await self._require_client(client_id)
        export_format, selected = validate_export_request(export_format, template, sections)
        today = today or date.today()

        jobs: dict[str, Job] = {}
        if _SUMMARY_SECTIONS.intersection(selected):
            jobs["summary"] = lambda svc: svc.get_summary(client_id, filters, today=today)
        if "forecasting" in selected:
            jobs["forecasting"] = lambda svc: svc.get_forecast(client_id, today=today)
        if "benchmarking" in selected:
            jobs["benchmarking"] = lambda svc: svc.get_benchmarks(client_id)

        results = dict(zip(jobs, await self._fan_out(*jobs.values())))

        payloads: dict[str, Any] = {}
        summary: AnalyticsSummary | None = results.get("summary")
        if summary is not None:
            payloads.update({
                "overview": summary.metrics.model_dump(mode="json"),
                "cashflow": [b.model_dump(mode="json") for b in summary.cash_flow],
                "categories": [c.model_dump(mode="json") for c in summary.categories],
                "liquidity": summary.liquidity.model_dump(mode="json"),
                "patterns": [p.model_dump(mode="json") for p in summary.patterns],
                "trends": summary.trends.model_dump(mode="json"),
            })
        for section in ("forecasting", "benchmarking"):
            if section in results:
                payloads[section] = results[section].model_dump(mode="json")

        logger.info(
            "analytics_export",
            client_id=str(client_id),
            format=export_format,
            template=template or "standard",
            sections=selected,
        )
        return build_export(
            client_id,
            export_format,
            template,
            selected,
            payloads,
            generated_at=datetime.now(timezone.utc),
        )
