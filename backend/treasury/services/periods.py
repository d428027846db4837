"""Calendar helpers: bucket keys, comparison windows and period tokens."""

import calendar
import re
from datetime import date, timedelta

from treasury.core.exceptions import BadRequestError

PERIODS = ("daily", "weekly", "monthly", "yearly")
DATE_RANGES = ("7d", "30d", "90d", "6m", "1y")
COMPARE_MODES = ("previous", "year_over_year", "none")

MAX_LOOKBACK_MONTHS = 120
MAX_FORECAST_DAYS = 365

_LOOKBACK_RE = re.compile(r"^(\d+)m$")
_FORECAST_RE = re.compile(r"^(\d+)d$")


def week_start(day: date) -> date:
    """Sunday that starts the week containing ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def period_key(day: date, period: str) -> str:
    """Fixed-width bucket key, so lexicographic order is chronological order."""
    if period == "daily":
        return day.isoformat()
    if period == "weekly":
        return week_start(day).isoformat()
    if period == "monthly":
        return f"{day.year:04d}-{day.month:02d}"
    if period == "yearly":
        return f"{day.year:04d}"
    raise BadRequestError(f"Invalid period '{period}'. Valid options: {', '.join(PERIODS)}")


def shift_months(day: date, months: int) -> date:
    """Move ``day`` by a number of calendar months, clamping to the month end."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def previous_window(start: date, end: date) -> tuple[date, date]:
    """The window with as many days as ``[start, end]`` (both inclusive) ending the day before ``start``."""
    length = end - start
    return start - length - timedelta(days=1), start - timedelta(days=1)


def parse_lookback(token: str) -> int:
    """Parse a ``"<N>m"`` lookback token into a number of months."""
    match = _LOOKBACK_RE.match(token or "")
    if not match or not 1 <= int(match.group(1)) <= MAX_LOOKBACK_MONTHS:
        raise BadRequestError(f"Invalid period '{token}'. Use format like \"12m\" (1-{MAX_LOOKBACK_MONTHS} months)")
    return int(match.group(1))


def parse_forecast_days(token: str) -> int:
    """Parse a ``"<N>d"`` forecast horizon."""
    match = _FORECAST_RE.match(token or "")
    if not match or not 1 <= int(match.group(1)) <= MAX_FORECAST_DAYS:
        raise BadRequestError(
            f"Invalid forecast period. Use format like \"90d\" (1-{MAX_FORECAST_DAYS} days)"
        )
    return int(match.group(1))


def dashboard_windows(
    date_range: str,
    compare_mode: str,
    today: date,
) -> tuple[tuple[date, date], tuple[date, date] | None]:
    """Resolve a dashboard range token and comparison mode to concrete windows."""
    if date_range not in DATE_RANGES:
        raise BadRequestError(f"Invalid date range. Valid options: {', '.join(DATE_RANGES)}")
    if compare_mode not in COMPARE_MODES:
        raise BadRequestError(f"Invalid compare mode. Valid options: {', '.join(COMPARE_MODES)}")

    if date_range == "6m":
        start = shift_months(today, -6)
    elif date_range == "1y":
        start = shift_months(today, -12)
    else:
        start = today - timedelta(days=int(date_range[:-1]))
    current = (start, today)

    if compare_mode == "previous":
        return current, previous_window(start, today)
    if compare_mode == "year_over_year":
        return current, (shift_months(start, -12), shift_months(today, -12))
    return current, None
