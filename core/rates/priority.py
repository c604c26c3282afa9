"""
core/rates/priority.py

Priority and exclusivity resolver.

An exclusive plan (allow_concurrent_rates = False) suppresses every plan with a
larger priority number than the best exclusive plan, while plans at equal or
better priority still show next to it.
"""
from typing import Iterable, List, Optional

from core.rates.models import RatePlan


def _rank(plan: RatePlan):
    return (plan.priority, plan.id)


def winning_exclusive(plans: Iterable[RatePlan]) -> Optional[RatePlan]:
    """The exclusive plan with the lowest priority value, ties by id."""
    exclusive = [p for p in plans if p.is_exclusive]
    if not exclusive:
        return None
    return min(exclusive, key=_rank)


def resolve_visible(applicable_plans: Iterable[RatePlan]) -> List[RatePlan]:
    """Return the plans visible to the guest, sorted ascending by priority."""
    plans = list(applicable_plans)
    winner = winning_exclusive(plans)
    if winner is not None:
        plans = [p for p in plans if p.priority <= winner.priority]
    return sorted(plans, key=_rank)
