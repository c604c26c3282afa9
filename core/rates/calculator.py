"""
core/rates/calculator.py

Nightly rate calculator.

Per night: an explicit price override wins; otherwise FixedPrice returns its
value and FixedDiscount / Percentage resolve their base plan for the same night
recursively and adjust it, never going below zero. The recursion is bounded by
max_depth and detects cycles, so a corrupt chain becomes a RateResolutionError
instead of unbounded recursion.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import FrozenSet, List

from core.rates.dates import iter_nights
from core.rates.errors import (
    MissingBaseRatePlanError,
    RateChainCycleError,
    RateChainDepthError,
    RateResolutionError,
)
from core.rates.models import (
    DEFAULT_MAX_CHAIN_DEPTH,
    AdjustmentType,
    RatePlan,
    RatePlanSnapshot,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class NightlyRate:
    """Price of one night."""

    date: date
    amount: Decimal
    is_override: bool = False


@dataclass
class StayPrice:
    """Per-night breakdown, total and average of a stay under one plan."""

    nightly_rates: List[NightlyRate] = field(default_factory=list)
    total: Decimal = ZERO
    average: Decimal = ZERO

    @property
    def nights(self) -> int:
        return len(self.nightly_rates)


class NightlyRateCalculator:
    """Resolves nightly prices against a RatePlanSnapshot."""

    def __init__(self, snapshot: RatePlanSnapshot, max_depth: int = DEFAULT_MAX_CHAIN_DEPTH):
        self.snapshot = snapshot
        self.max_depth = max_depth

    def price_for_night(self, plan: RatePlan, night: date) -> Decimal:
        """Resolved price of one night, rounded to cents."""
        return quantize_money(self._resolve(plan, night, 0, frozenset()))

    def price_for_stay(self, plan: RatePlan, check_in: date, check_out: date) -> StayPrice:
        """Sum of nightly prices over [check_in, check_out)."""
        stay = StayPrice()
        for night in iter_nights(check_in, check_out):
            stay.nightly_rates.append(NightlyRate(
                date=night,
                amount=self.price_for_night(plan, night),
                is_override=plan.override_for(night) is not None,
            ))
        stay.total = quantize_money(sum((n.amount for n in stay.nightly_rates), ZERO))
        if stay.nightly_rates:
            stay.average = quantize_money(stay.total / len(stay.nightly_rates))
        return stay

    def _resolve(self, plan: RatePlan, night: date, depth: int, seen: FrozenSet[int]) -> Decimal:
        if plan.id in seen:
            raise RateChainCycleError(
                f"Rate plan {plan.id} appears twice in its base-plan chain", plan.id)
        if depth > self.max_depth:
            raise RateChainDepthError(
                f"Base-plan chain of rate plan {plan.id} exceeds depth {self.max_depth}", plan.id)

        override = plan.override_for(night)
        if override is not None:
            return Decimal(override)

        adjustment_type = AdjustmentType(plan.adjustment_type)
        value = Decimal(plan.adjustment_value)

        if adjustment_type is AdjustmentType.FIXED_PRICE:
            return value

        base_plan = self.snapshot.get(plan.base_rate_plan_id)
        if base_plan is None:
            raise MissingBaseRatePlanError(
                f"Rate plan {plan.id} has no resolvable base rate plan "
                f"(base_rate_plan_id={plan.base_rate_plan_id})", plan.id)

        base = self._resolve(base_plan, night, depth + 1, seen | {plan.id})

        if adjustment_type is AdjustmentType.FIXED_DISCOUNT:
            return max(ZERO, base - value)
        if adjustment_type is AdjustmentType.PERCENTAGE:
            return max(ZERO, base - base * value / HUNDRED)

        raise RateResolutionError(f"Unsupported adjustment type {plan.adjustment_type}", plan.id)
