"""
core/rates/deletion.py

Smart deletion decision.

Order matters: a plan other plans derive from is never removed, a plan nobody
booked is removed for good, anything else is only deactivated.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Union


def _details(reservation_count: int, derived_rate_plan_names: List[str]) -> Dict[str, Any]:
    return {
        "reservation_count": reservation_count,
        "derived_rate_plans_count": len(derived_rate_plan_names),
        "derived_rate_plan_names": list(derived_rate_plan_names),
    }


@dataclass(frozen=True)
class HardDelete:
    """Remove the plan with its restrictions, policy and overrides."""
    kind = "hard"

    def details(self) -> Dict[str, Any]:
        return _details(0, [])


@dataclass(frozen=True)
class SoftDelete:
    """Keep the row for reservation history, set is_active = False."""
    reservation_count: int
    kind = "soft"

    def details(self) -> Dict[str, Any]:
        return _details(self.reservation_count, [])


@dataclass(frozen=True)
class DeletionBlocked:
    """Other plans use this one as their base."""
    derived_rate_plan_names: List[str] = field(default_factory=list)
    reservation_count: int = 0
    kind = "blocked"

    def details(self) -> Dict[str, Any]:
        return _details(self.reservation_count, self.derived_rate_plan_names)


DeletionOutcome = Union[HardDelete, SoftDelete, DeletionBlocked]


def decide_deletion(reservation_count: int, derived_plan_names: Iterable[str]) -> DeletionOutcome:
    derived = list(derived_plan_names)
    if derived:
        return DeletionBlocked(derived_rate_plan_names=derived, reservation_count=reservation_count)
    if reservation_count == 0:
        return HardDelete()
    return SoftDelete(reservation_count=reservation_count)
