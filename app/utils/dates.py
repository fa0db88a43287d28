"""
Calendar helpers for leave requests: business days, holidays and overlap.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.holiday import Holiday


def today() -> date:
    """Single source of 'today' for past-date checks."""
    return date.today()


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def holidays_in_range(db: Session, start: date, end: date) -> List[Holiday]:
    return (
        db.query(Holiday)
        .filter(
            Holiday.is_active == True,  # noqa: E712
            Holiday.date >= start,
            Holiday.date <= end,
        )
        .order_by(Holiday.date)
        .all()
    )


def count_business_days(
    start: date,
    end: date,
    holidays: Iterable[date] = (),
    weekend_days: Optional[Iterable[int]] = None,
) -> Decimal:
    """Days in [start, end] that are neither weekend days nor holidays."""
    weekend = set(settings.workflow.weekend_days if weekend_days is None else weekend_days)
    closed = set(holidays)
    count = sum(1 for day in iter_days(start, end) if day.weekday() not in weekend and day not in closed)
    return Decimal(count)


def half_day_value() -> Decimal:
    return Decimal(settings.workflow.half_day_value)


def format_date(value: Optional[date]) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%b %d, %Y")


def format_period(start: date, end: date) -> str:
    first, last = format_date(start), format_date(end)
    return first if first == last else f"{first} to {last}"
