from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from errors import InvalidInput


@dataclass(frozen=True)
class Period:
    slug: str
    start: Optional[datetime]
    end: Optional[datetime]


def local_now() -> datetime:
    """Current wall-clock time in the configured timezone, as a naive datetime."""
    tz = ZoneInfo(get_settings().timezone)
    return datetime.now(tz).replace(tzinfo=None)


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def month_end(year: int, month: int) -> date:
    return add_months(date(year, month, 1), 1) - date.resolution


def month_window(year: int, month: int) -> Period:
    start = datetime.combine(date(year, month, 1), time.min)
    end = datetime.combine(month_end(year, month), time.max)
    return Period(f"{year:04d}-{month:02d}", start, end)


def current_month(now: datetime) -> Period:
    start = datetime.combine(now.date().replace(day=1), time.min)
    return Period("this_month", start, now)


def trailing_months(now: datetime, count: int) -> list[Period]:
    """The ``count`` calendar months ending at ``now``, oldest first."""
    first = now.date().replace(day=1)
    windows: list[Period] = []
    for offset in range(count - 1, -1, -1):
        month = add_months(first, -offset)
        windows.append(month_window(month.year, month.month))
    return windows


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> Period:
    now = now or local_now()
    if not period or period == "all":
        return Period("all", None, None)
    if period == "last_month":
        last = add_months(now.date().replace(day=1), -1)
        window = month_window(last.year, last.month)
        return Period("last_month", window.start, window.end)
    if period == "custom":
        if not start or not end:
            raise InvalidInput(
                "Custom period requires start and end dates", field="period"
            )
        try:
            start_date = date.fromisoformat(start)
            end_date = date.fromisoformat(end)
        except ValueError as exc:
            raise InvalidInput("Dates must be YYYY-MM-DD", field="period") from exc
        if start_date > end_date:
            raise InvalidInput(
                "Start date must be before end date", field="start", value=start
            )
        return Period(
            "custom",
            datetime.combine(start_date, time.min),
            datetime.combine(end_date, time.max),
        )
    if period == "this_month":
        return current_month(now)
    raise InvalidInput(f"Unknown period: {period}", field="period", value=period)
