"""
core/rates/search.py

Search orchestration over one property snapshot:
filter -> resolve -> price -> rank -> savings annotation.

Request validation, availability and snapshot loading belong to the caller;
this module only decides which plans are offered and at what price.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from core.rates.calculator import HUNDRED, ZERO, NightlyRateCalculator, StayPrice, quantize_money
from core.rates.dates import DateLike, to_date
from core.rates.errors import RateResolutionError
from core.rates.models import DEFAULT_MAX_CHAIN_DEPTH, RatePlan, RatePlanSnapshot
from core.rates.priority import resolve_visible
from core.rates.restrictions import filter_applicable

logger = logging.getLogger(__name__)

HIGHEST_RATE = "highest rate"


@dataclass(frozen=True)
class SearchCriteria:
    """Validated search request."""

    property_id: int
    check_in: date
    check_out: date
    num_guests: int
    booking_date: DateLike


@dataclass(frozen=True)
class Savings:
    """Difference to the most expensive result of the same search."""

    amount: Decimal
    percentage: Decimal
    compared_to: str = HIGHEST_RATE


@dataclass
class RateSearchResult:
    """One offered rate plan with its stay pricing."""

    rate_plan: RatePlan
    price: StayPrice
    savings: Optional[Savings] = None

    @property
    def total_price(self) -> Decimal:
        return self.price.total

    @property
    def average_nightly_rate(self) -> Decimal:
        return self.price.average


class RateSearchEngine:
    """
    Pure rate search for one property.

    Only active plans are candidates; inactive plans remain in the snapshot so
    active derived plans can still resolve through them.
    """

    def __init__(self, snapshot: RatePlanSnapshot, max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH):
        self.snapshot = snapshot
        self.calculator = NightlyRateCalculator(snapshot, max_depth=max_chain_depth)

    def search(self, criteria: SearchCriteria) -> List[RateSearchResult]:
        applicable = filter_applicable(
            self.snapshot.active_plans(),
            criteria.check_in,
            criteria.check_out,
            criteria.num_guests,
            criteria.booking_date,
        )
        visible = resolve_visible(applicable)

        results = []
        for plan in visible:
            try:
                price = self.calculator.price_for_stay(
                    plan, to_date(criteria.check_in), to_date(criteria.check_out))
            except RateResolutionError as e:
                logger.warning(f"Skipping rate plan {plan.id} ({plan.name}): {e}")
                continue
            results.append(RateSearchResult(rate_plan=plan, price=price))

        results.sort(key=lambda r: (r.total_price, r.rate_plan.priority, r.rate_plan.id))
        annotate_savings(results)
        return results


def annotate_savings(results: List[RateSearchResult]) -> None:
    """Attach savings to every result strictly cheaper than the most expensive one."""
    if len(results) < 2:
        return
    highest = max(r.total_price for r in results)
    if highest <= ZERO:
        return
    for result in results:
        if result.total_price < highest:
            amount = quantize_money(highest - result.total_price)
            result.savings = Savings(
                amount=amount,
                percentage=quantize_money(amount * HUNDRED / highest),
            )
