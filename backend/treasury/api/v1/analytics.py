"""Analytics API routes: overview, cash flow, liquidity, forecasts, dashboards."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query

from treasury.api.deps import get_analytics_filter, get_analytics_service
from treasury.schemas.analytics import (
    AnalyticsFilter,
    AnalyticsOverview,
    AnalyticsSummary,
    BenchmarkResponse,
    CategoryStat,
    DashboardResponse,
    ExportRequest,
    ExportResponse,
    ForecastResponse,
    LiquiditySnapshot,
    PeriodBucket,
    SpendingPattern,
    TrendPoint,
    VendorStat,
)
from treasury.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/overview/{client_id}", response_model=AnalyticsOverview)
async def overview(
    client_id: uuid.UUID,
    filters: AnalyticsFilter = Depends(get_analytics_filter),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Inflow, outflow, net flow, average balance and liquidity ratio."""
    return await service.get_overview(client_id, filters)


@router.get("/cashflow/{client_id}", response_model=list[PeriodBucket])
async def cash_flow(
    client_id: uuid.UUID,
    period: str = Query("daily", pattern="^(daily|weekly|monthly|yearly)$"),
    start_date: date | None = None,
    end_date: date | None = None,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Cash flow bucketed by calendar period, oldest first."""
    return await service.get_cash_flow(client_id, period, start_date, end_date)


@router.get("/categories/{client_id}", response_model=list[CategoryStat])
async def categories(
    client_id: uuid.UUID,
    filters: AnalyticsFilter = Depends(get_analytics_filter),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_categories(client_id, filters)


@router.get("/vendors/{client_id}", response_model=list[VendorStat])
async def vendors(
    client_id: uuid.UUID,
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_vendors(client_id)


@router.get("/liquidity/{client_id}", response_model=LiquiditySnapshot)
async def liquidity(
    client_id: uuid.UUID,
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_liquidity(client_id)


@router.get("/patterns/{client_id}", response_model=list[SpendingPattern])
async def spending_patterns(
    client_id: uuid.UUID,
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_spending_patterns(client_id)


@router.get("/trends/{client_id}", response_model=list[TrendPoint])
async def trends(
    client_id: uuid.UUID,
    metric: str = Query(..., pattern="^(inflow|outflow|balance|transactions)$"),
    period: str = Query("12m", pattern=r"^\d+m$"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Monthly series for one metric over the last ``period`` months."""
    return await service.get_trends(client_id, metric, period)


@router.get("/forecast/{client_id}", response_model=ForecastResponse)
async def forecast(
    client_id: uuid.UUID,
    forecast_period: str = Query("90d", pattern=r"^\d+d$"),
    confidence_level: float = 0.85,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Daily cash-flow forecast with seasonality and recommendations.

    The forecast list is empty when less than 30 days of history exist.
    """
    return await service.get_forecast(client_id, forecast_period, confidence_level)


@router.get("/benchmarks/{client_id}", response_model=BenchmarkResponse)
async def benchmarks(
    client_id: uuid.UUID,
    industry: str | None = None,
    business_segment: str | None = None,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Compare the client against its industry/segment benchmark."""
    return await service.get_benchmarks(client_id, industry, business_segment)


@router.get("/dashboard/{client_id}", response_model=DashboardResponse)
async def dashboard(
    client_id: uuid.UUID,
    date_range: str = Query("30d", pattern="^(7d|30d|90d|6m|1y)$"),
    compare_mode: str = Query("previous", pattern="^(previous|year_over_year|none)$"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_dashboard(client_id, date_range, compare_mode)


@router.get("/summary/{client_id}", response_model=AnalyticsSummary)
async def summary(
    client_id: uuid.UUID,
    filters: AnalyticsFilter = Depends(get_analytics_filter),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Overview, cash flow, categories, liquidity, patterns and trends in one response."""
    return await service.get_summary(client_id, filters)


@router.post("/export/{client_id}", response_model=ExportResponse)
async def export(
    client_id: uuid.UUID,
    data: ExportRequest,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Build an export envelope for the requested sections."""
    return await service.export(
        client_id,
        data.format,
        filters=data.filters,
        template=data.template,
        sections=data.sections,
    )
