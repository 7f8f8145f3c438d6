from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from errors import ValidationError


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    first = month_start(d)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def week_start(d: date) -> date:
    # Weeks run Sunday through Saturday.
    return d - timedelta(days=(d.weekday() + 1) % 7)


def month_period(d: date) -> Period:
    return Period("month", month_start(d), month_end(d))


def days_between(start: date, end: date) -> list[date]:
    days: list[date] = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def months_between(start: date, end: date) -> list[date]:
    months: list[date] = []
    current = month_start(start)
    while current <= end:
        months.append(current)
        current = add_months(current, 1)
    return months


def resolve_trend_period(period: Optional[str], *, today: Optional[date] = None) -> Period:
    """Window covered by a spending-trend request: the current week, month or year."""
    today = today or date.today()
    if period == "week":
        start = week_start(today)
        return Period("week", start, start + timedelta(days=6))
    if period == "month":
        return Period("month", month_start(today), month_end(today))
    if period == "year":
        return Period("year", date(today.year, 1, 1), date(today.year, 12, 31))
    raise ValidationError("Invalid period")
