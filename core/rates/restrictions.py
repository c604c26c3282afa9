"""
core/rates/restrictions.py

Restriction filter - decides whether a rate plan is offered for a stay.

Each restriction type maps to a checker function evaluated against a
StayContext. All restrictions of a plan are combined with AND semantics.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

from core.rates.dates import DateLike, ceil_days_between, to_date, weekday_number
from core.rates.models import RatePlan, Restriction, RestrictionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StayContext:
    """
    Derived quantities of a search request.

    Attributes:
        check_in: Arrival date
        check_out: Departure date
        num_guests: Party size
        length_of_stay: Nights, ceil((check_out - check_in) / 1 day)
        days_in_advance: ceil((check_in - booking_date) / 1 day)
    """

    check_in: date
    check_out: date
    num_guests: int
    length_of_stay: int
    days_in_advance: int

    @classmethod
    def build(cls, check_in: DateLike, check_out: DateLike, num_guests: int,
              booking_date: DateLike) -> "StayContext":
        return cls(
            check_in=to_date(check_in),
            check_out=to_date(check_out),
            num_guests=num_guests,
            length_of_stay=ceil_days_between(check_out, check_in),
            days_in_advance=ceil_days_between(check_in, booking_date),
        )


RestrictionChecker = Callable[[Restriction, StayContext], bool]


def _in_window(restriction: Restriction, day: date) -> Optional[bool]:
    """Inclusive window membership, None when a bound is missing."""
    if restriction.start_date is None or restriction.end_date is None:
        return None
    return restriction.start_date <= day <= restriction.end_date


def _numeric(compare: Callable[[int, int], bool],
             quantity: Callable[[StayContext], int]) -> RestrictionChecker:
    def check(restriction: Restriction, stay: StayContext) -> bool:
        if restriction.value is None:
            return True
        return compare(quantity(stay), restriction.value)
    return check


def _no_arrivals(restriction: Restriction, stay: StayContext) -> bool:
    return _in_window(restriction, stay.check_in) is not True


def _no_departures(restriction: Restriction, stay: StayContext) -> bool:
    return _in_window(restriction, stay.check_out) is not True


def _seasonal_date_range(restriction: Restriction, stay: StayContext) -> bool:
    # a window with a missing bound never matches and so never requires anything
    return _in_window(restriction, stay.check_in) is not False


_CHECKERS: Dict[RestrictionType, RestrictionChecker] = {
    RestrictionType.MIN_LENGTH_OF_STAY: _numeric(lambda q, v: q >= v, lambda s: s.length_of_stay),
    RestrictionType.MAX_LENGTH_OF_STAY: _numeric(lambda q, v: q <= v, lambda s: s.length_of_stay),
    RestrictionType.MIN_GUESTS: _numeric(lambda q, v: q >= v, lambda s: s.num_guests),
    RestrictionType.MAX_GUESTS: _numeric(lambda q, v: q <= v, lambda s: s.num_guests),
    RestrictionType.MIN_ADVANCED_RESERVATION: _numeric(lambda q, v: q >= v, lambda s: s.days_in_advance),
    RestrictionType.MAX_ADVANCED_RESERVATION: _numeric(lambda q, v: q <= v, lambda s: s.days_in_advance),
    RestrictionType.NO_ARRIVALS: _no_arrivals,
    RestrictionType.NO_DEPARTURES: _no_departures,
    RestrictionType.SEASONAL_DATE_RANGE: _seasonal_date_range,
}


def restriction_passes(restriction: Restriction, stay: StayContext) -> bool:
    """Evaluate a single restriction."""
    checker = _CHECKERS.get(RestrictionType(restriction.type))
    if checker is None:
        return True
    return checker(restriction, stay)


def is_plan_applicable(plan: RatePlan, stay: StayContext) -> bool:
    """Day-of-week check, then every restriction of the plan."""
    if weekday_number(stay.check_in) not in plan.active_days:
        return False
    for restriction in plan.restrictions:
        if not restriction_passes(restriction, stay):
            logger.debug(f"Rate plan {plan.id} rejected by {restriction.type}")
            return False
    return True


def filter_applicable(candidate_plans: Iterable[RatePlan], check_in: DateLike,
                      check_out: DateLike, num_guests: int,
                      booking_date: DateLike) -> List[RatePlan]:
    """Return the candidates that satisfy all of their restrictions, in input order."""
    stay = StayContext.build(check_in, check_out, num_guests, booking_date)
    return [plan for plan in candidate_plans if is_plan_applicable(plan, stay)]
