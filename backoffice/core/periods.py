# =========================================================
# PERIOD HELPERS
# Calendar ranges used by the statistics rollups.
# Weeks run Sunday to Saturday.
# =========================================================

from calendar import monthrange
from datetime import date, datetime, timedelta
from decimal import Decimal

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def day_bounds(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    return (
        datetime.combine(start_date, datetime.min.time()),
        datetime.combine(end_date, datetime.max.time()),
    )


def week_start(day: date) -> date:
    # date.weekday(): Monday == 0, so Sunday is (weekday + 1) % 7 days back
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_range(day: date) -> tuple[date, date]:
    start = week_start(day)
    return start, start + timedelta(days=6)


def week_number(day: date) -> int:
    """Week of the year, counted from the Sunday on or before 1 January."""
    first_sunday = week_start(date(day.year, 1, 1))
    return (day - first_sunday).days // 7 + 1


def month_range(year: int, month: int) -> tuple[date, date]:
    last_day = monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def percentage_change(current, previous) -> Decimal:
    current = Decimal(current or 0)
    previous = Decimal(previous or 0)

    if previous == 0:
        if current > 0:
            return Decimal("100.00")
        return Decimal("0.00")

    return (((current - previous) / previous) * 100).quantize(Decimal("0.01"))
