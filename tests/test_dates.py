from datetime import date
from decimal import Decimal

from app.utils.dates import count_business_days, format_period


def test_business_days_skip_weekend():
    # Friday 2025-01-03 .. Monday 2025-01-06
    assert count_business_days(date(2025, 1, 3), date(2025, 1, 6)) == Decimal("2")


def test_business_days_skip_holidays():
    holidays = [date(2025, 1, 7)]
    assert count_business_days(date(2025, 1, 6), date(2025, 1, 10), holidays=holidays) == Decimal("4")


def test_business_days_custom_weekend():
    # Friday/Saturday weekend
    assert count_business_days(date(2025, 1, 3), date(2025, 1, 6), weekend_days=[4, 5]) == Decimal("2")


def test_business_days_weekend_only():
    assert count_business_days(date(2025, 1, 4), date(2025, 1, 5)) == Decimal("0")


def test_format_period():
    assert format_period(date(2025, 1, 6), date(2025, 1, 6)) == "Jan 06, 2025"
    assert format_period(date(2025, 1, 6), date(2025, 1, 8)) == "Jan 06, 2025 to Jan 08, 2025"
