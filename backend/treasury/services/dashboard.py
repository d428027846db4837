"""Dashboard KPI composition."""

from treasury.schemas.analytics import AnalyticsOverview, DashboardKPI

# (KPI name, overview attribute, unit; None = reporting currency)
KPI_FIELDS: list[tuple[str, str, str | None]] = [
    ("Net Cash Flow", "net_cash_flow", None),
    ("Average Daily Balance", "average_daily_balance", None),
    ("Liquidity Ratio", "liquidity_ratio", "ratio"),
    ("Total Inflow", "total_inflow", None),
    ("Total Outflow", "total_outflow", None),
    ("Transaction Count", "transaction_count", "count"),
]


def compare(current: float, comparison: float) -> tuple[float, str]:
    """Percent change (denominator floored at 1) and its direction."""
    change = current - comparison
    percent = round(change / max(abs(comparison), 1) * 100, 2)
    if change > 0:
        return percent, "up"
    if change < 0:
        return percent, "down"
    return percent, "stable"


def build_kpis(
    current: AnalyticsOverview,
    comparison: AnalyticsOverview | None,
    currency: str,
) -> list[DashboardKPI]:
    kpis = []
    for name, attribute, unit in KPI_FIELDS:
        value = float(getattr(current, attribute))
        change, trend = 0.0, "stable"
        if comparison is not None:
            change, trend = compare(value, float(getattr(comparison, attribute)))
        kpis.append(DashboardKPI(name=name, value=value, unit=unit or currency, trend=trend, change=change))
    return kpis
