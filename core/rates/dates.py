"""
core/rates/dates.py

Calendar helpers shared by the filter, calculator and refund calculator.
"""
import math
from datetime import date, datetime, timedelta
from typing import Iterator, Union

DateLike = Union[date, datetime]

SECONDS_PER_DAY = 24 * 60 * 60


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        # naive comparison, the stay calendar has no time zone
        return value.replace(tzinfo=None)
    return datetime(value.year, value.month, value.day)


def ceil_days_between(later: DateLike, earlier: DateLike) -> int:
    """ceil((later - earlier) / 1 day); a plain date counts as midnight."""
    delta = _as_datetime(later) - _as_datetime(earlier)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Every night of the stay, check-out night excluded."""
    night = check_in
    while night < check_out:
        yield night
        night += timedelta(days=1)


def weekday_number(value: date) -> int:
    """Weekday with 0 = Sunday ... 6 = Saturday."""
    return value.isoweekday() % 7


def to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
