"""Analytics schemas."""

import uuid
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from treasury.models.transaction import TransactionType

Trend = Literal["up", "down", "stable", "new"]
Direction = Literal["up", "down", "stable"]


class AnalyticsFilter(BaseModel):
    """Row selection shared by the overview, category and summary endpoints."""
    start_date: date | None = None
    end_date: date | None = None
    account_id: uuid.UUID | None = None
    categories: list[str] | None = None
    transaction_types: list[TransactionType] | None = None
    min_amount: float | None = None
    max_amount: float | None = None

    @model_validator(mode="after")
    def check_date_order(self) -> "AnalyticsFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class PeriodRange(BaseModel):
    start_date: date | None = None
    end_date: date | None = None


# ── Aggregates ────────────────────────────────────


class AnalyticsOverview(BaseModel):
    total_inflow: float
    total_outflow: float
    net_cash_flow: float
    average_daily_balance: float
    liquidity_ratio: float
    idle_balance: float
    transaction_count: int
    period: PeriodRange


class PeriodBucket(BaseModel):
    period_key: str  # "2026-01-31", "2026-01", "2026" ...
    inflow: float
    outflow: float
    balance: float
    net_flow: float
    transaction_count: int = 0


class CategoryStat(BaseModel):
    category: str
    amount: float
    count: int
    percentage: float
    trend: Trend


class VendorStat(BaseModel):
    vendor_name: str
    total_amount: float
    transaction_count: int
    percentage: float
    payment_methods: list[TransactionType]


class LiquiditySnapshot(BaseModel):
    average_balance: float
    minimum_balance: float
    maximum_balance: float
    volatility: float
    idle_days: int
    liquidity_score: float
    threshold_exceeded: bool
    threshold_amount: float


class SpendingPattern(BaseModel):
    category: str
    subcategory: str
    total_amount: float
    transaction_count: int
    average_amount: float
    frequency: Literal["high", "medium", "low"]
    seasonality: Literal["high", "medium", "low"]
    vendors: list[VendorStat]


class TrendPoint(BaseModel):
    period: str
    value: float
    change: float
    change_percent: float


# ── Forecasting ───────────────────────────────────


class ForecastPoint(BaseModel):
    date: date
    predicted_inflow: float
    predicted_outflow: float
    predicted_balance: float
    confidence: float


class SeasonalPeriodStat(BaseModel):
    period: str  # "Jan" ... "Dec" or "Sun" ... "Sat"
    avg_inflow: float
    avg_outflow: float
    transaction_count: int


class SeasonalPattern(BaseModel):
    type: Literal["monthly", "weekly"]
    data: list[SeasonalPeriodStat]


class SeasonalFactor(BaseModel):
    name: str
    description: str
    value: list[str]


class SeasonalityAnalysis(BaseModel):
    patterns: list[SeasonalPattern]
    factors: list[SeasonalFactor]


class ForecastResponse(BaseModel):
    forecast: list[ForecastPoint]
    seasonality: SeasonalityAnalysis
    recommendations: list[str]


# ── Benchmarking ──────────────────────────────────


class IndustryBenchmark(BaseModel):
    liquidity_ratio: float
    avg_daily_balance: float
    volatility: float


class ComparisonArea(BaseModel):
    metric: str
    client_value: float
    benchmark_value: float
    performance: Literal["above_average", "below_average"]


class BenchmarkClientMetrics(AnalyticsOverview):
    liquidity: LiquiditySnapshot


class BenchmarkResponse(BaseModel):
    industry: str | None
    business_segment: str | None
    client_metrics: BenchmarkClientMetrics
    industry_benchmarks: IndustryBenchmark
    percentile_rank: int = Field(ge=0, le=100)
    comparison_areas: list[ComparisonArea]


# ── Dashboard / summary ───────────────────────────


class DashboardKPI(BaseModel):
    name: str
    value: float
    unit: str
    trend: Direction
    change: float


class DashboardCharts(BaseModel):
    cash_flow: list[PeriodBucket]
    categories: list[CategoryStat]
    trends: list[TrendPoint]


class DashboardResponse(BaseModel):
    metrics: AnalyticsOverview
    charts: DashboardCharts
    kpis: list[DashboardKPI]
    period: PeriodRange
    comparison_period: PeriodRange | None = None


class SummaryTrends(BaseModel):
    inflow: list[TrendPoint]
    outflow: list[TrendPoint]
    balance: list[TrendPoint]


class AnalyticsSummary(BaseModel):
    metrics: AnalyticsOverview
    cash_flow: list[PeriodBucket]
    categories: list[CategoryStat]
    liquidity: LiquiditySnapshot
    patterns: list[SpendingPattern]
    trends: SummaryTrends


# ── Export ────────────────────────────────────────


class ExportMetadata(BaseModel):
    client_id: uuid.UUID
    generated_at: datetime
    template: str
    format: str
    sections: list[str]


class ExportResponse(BaseModel):
    metadata: ExportMetadata
    media_type: str
    filename: str
    data: dict[str, Any]


class ExportRequest(BaseModel):
    format: str = "json"
    template: str | None = None
    sections: list[str] | None = None
    filters: AnalyticsFilter | None = None
