"""
core/rates/models.py

Rate plan snapshot model.

The engine never talks to storage. The application layer assembles a
RatePlanSnapshot for one property (plans, restrictions, cancellation policy,
price overrides) and every engine function is a pure function of that
snapshot plus its arguments.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional

ALL_DAYS: FrozenSet[int] = frozenset(range(7))

# Default cap on base-plan chain length, both at write time and read time
DEFAULT_MAX_CHAIN_DEPTH = 10


class AdjustmentType(str, Enum):
    """How a rate plan derives its nightly price."""
    FIXED_PRICE = "FixedPrice"
    FIXED_DISCOUNT = "FixedDiscount"
    PERCENTAGE = "Percentage"

    @property
    def is_derived(self) -> bool:
        return self is not AdjustmentType.FIXED_PRICE


class RestrictionType(str, Enum):
    """Restriction kinds; numeric ones use `value`, date-range ones use the window."""
    MIN_LENGTH_OF_STAY = "MinLengthOfStay"
    MAX_LENGTH_OF_STAY = "MaxLengthOfStay"
    MIN_GUESTS = "MinGuests"
    MAX_GUESTS = "MaxGuests"
    MIN_ADVANCED_RESERVATION = "MinAdvancedReservation"
    MAX_ADVANCED_RESERVATION = "MaxAdvancedReservation"
    NO_ARRIVALS = "NoArrivals"
    NO_DEPARTURES = "NoDepartures"
    SEASONAL_DATE_RANGE = "SeasonalDateRange"

    @property
    def is_date_range(self) -> bool:
        return self in DATE_RANGE_RESTRICTIONS


DATE_RANGE_RESTRICTIONS = frozenset({
    RestrictionType.NO_ARRIVALS,
    RestrictionType.NO_DEPARTURES,
    RestrictionType.SEASONAL_DATE_RANGE,
})


@dataclass(frozen=True)
class Restriction:
    """One constraint of a rate plan."""

    type: RestrictionType
    value: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class CancellationTier:
    """Refund rule: cancel at least `days_before_check_in` days out, get `refund_percentage`."""

    days_before_check_in: int
    refund_percentage: Decimal
    description: Optional[str] = None


@dataclass
class CancellationPolicy:
    """Tiered cancellation policy owned by a rate plan."""

    tiers: List[CancellationTier] = field(default_factory=list)

    def sorted_tiers(self) -> List[CancellationTier]:
        return sorted(self.tiers, key=lambda t: t.days_before_check_in)


@dataclass
class RatePlan:
    """
    Rate plan as seen by the engine.

    Attributes:
        id: Rate plan identifier
        property_id: Owning property
        name: Display name
        adjustment_type: FixedPrice / FixedDiscount / Percentage
        adjustment_value: Price, discount amount or percentage
        base_rate_plan_id: Base plan for derived adjustment types
        priority: 1-999, lower wins
        allow_concurrent_rates: False marks the plan exclusive
        active_days: Weekdays (0 = Sunday) on which the plan can start a stay
        price_overrides: Explicit per-date prices, keyed by date
    """

    id: int
    property_id: int
    name: str
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    base_rate_plan_id: Optional[int] = None
    priority: int = 100
    allow_concurrent_rates: bool = True
    active_days: FrozenSet[int] = ALL_DAYS
    is_active: bool = True
    includes_breakfast: bool = False
    description: Optional[str] = None
    policy_type: Optional[str] = None
    restrictions: List[Restriction] = field(default_factory=list)
    cancellation_policy: Optional[CancellationPolicy] = None
    price_overrides: Dict[date, Decimal] = field(default_factory=dict)

    @property
    def is_exclusive(self) -> bool:
        return not self.allow_concurrent_rates

    def override_for(self, night: date) -> Optional[Decimal]:
        return self.price_overrides.get(night)


@dataclass
class RatePlanSnapshot:
    """All rate plans of one property, read in a single consistent pass."""

    property_id: int
    rate_plans: Dict[int, RatePlan] = field(default_factory=dict)

    @classmethod
    def from_plans(cls, property_id: int, plans: Iterable[RatePlan]) -> "RatePlanSnapshot":
        return cls(property_id=property_id, rate_plans={p.id: p for p in plans})

    def get(self, rate_plan_id: Optional[int]) -> Optional[RatePlan]:
        if rate_plan_id is None:
            return None
        return self.rate_plans.get(rate_plan_id)

    def active_plans(self) -> List[RatePlan]:
        return [p for p in self.rate_plans.values() if p.is_active]

    def derived_from(self, rate_plan_id: int) -> List[RatePlan]:
        """Plans whose base_rate_plan_id points at the given plan."""
        return [p for p in self.rate_plans.values() if p.base_rate_plan_id == rate_plan_id]
