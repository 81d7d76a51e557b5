from datetime import date
from decimal import Decimal

from backoffice.core.periods import (
    month_range,
    percentage_change,
    previous_month,
    week_number,
    week_range,
    week_start,
)


def test_week_starts_on_sunday():
    # 2026-10-18 is a Sunday
    assert week_start(date(2026, 10, 18)) == date(2026, 10, 18)
    assert week_start(date(2026, 10, 21)) == date(2026, 10, 18)
    assert week_start(date(2026, 10, 24)) == date(2026, 10, 18)


def test_week_range_is_sunday_to_saturday():
    assert week_range(date(2026, 10, 20)) == (date(2026, 10, 18), date(2026, 10, 24))


def test_week_number_counts_from_sunday_before_new_year():
    # 1 January 2026 is a Thursday; its week began on Sunday 28 December 2025
    assert week_number(date(2026, 1, 1)) == 1
    assert week_number(date(2026, 1, 3)) == 1
    assert week_number(date(2026, 1, 4)) == 2


def test_month_range_handles_leap_years():
    assert month_range(2028, 2) == (date(2028, 2, 1), date(2028, 2, 29))
    assert month_range(2026, 2) == (date(2026, 2, 1), date(2026, 2, 28))


def test_previous_month_wraps_the_year():
    assert previous_month(2026, 1) == (2025, 12)
    assert previous_month(2026, 7) == (2026, 6)


def test_percentage_change():
    assert percentage_change(150, 100) == Decimal("50.00")
    assert percentage_change(50, 100) == Decimal("-50.00")
    assert percentage_change(10, 0) == Decimal("100.00")
    assert percentage_change(0, 0) == Decimal("0.00")
