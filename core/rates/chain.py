"""
core/rates/chain.py

Write-time validation of base_rate_plan_id references.

The read-time calculator tolerates multi-level chains; this module makes sure
no write ever stores a chain the calculator cannot resolve: the chain must stay
within one property, end at a FixedPrice plan, contain no cycle and be no
longer than max_depth.
"""
from dataclasses import dataclass
from typing import Mapping, Optional

from core.rates.errors import InvalidBaseChainError
from core.rates.models import DEFAULT_MAX_CHAIN_DEPTH, AdjustmentType


@dataclass(frozen=True)
class ChainLink:
    """The fields of a rate plan that matter for chain validation."""

    id: int
    property_id: int
    adjustment_type: AdjustmentType
    base_rate_plan_id: Optional[int] = None


def validate_base_chain(links: Mapping[int, ChainLink], property_id: int,
                        adjustment_type: AdjustmentType,
                        base_rate_plan_id: Optional[int],
                        rate_plan_id: Optional[int] = None,
                        max_depth: int = DEFAULT_MAX_CHAIN_DEPTH) -> int:
    """
    Validate the chain a (new or updated) rate plan would sit on.

    Args:
        links: Every existing plan of the property, keyed by id
        property_id: Property of the plan being written
        adjustment_type: Adjustment type being written
        base_rate_plan_id: Base plan being written
        rate_plan_id: Id of the plan being updated, None on create
        max_depth: Maximum number of base hops

    Returns:
        Number of hops from the plan to its FixedPrice leaf.

    Raises:
        InvalidBaseChainError: On any violation.
    """
    adjustment_type = AdjustmentType(adjustment_type)

    if not adjustment_type.is_derived:
        if base_rate_plan_id is not None:
            raise InvalidBaseChainError("FixedPrice rate plans cannot reference a base rate plan")
        return 0

    if base_rate_plan_id is None:
        raise InvalidBaseChainError(
            f"base_rate_plan_id is required for {adjustment_type.value} rate plans")

    if rate_plan_id is not None and base_rate_plan_id == rate_plan_id:
        raise InvalidBaseChainError("A rate plan cannot be its own base rate plan")

    base = links.get(base_rate_plan_id)
    if base is None or base.property_id != property_id:
        raise InvalidBaseChainError("Base rate plan not found for this property")

    if adjustment_type is AdjustmentType.PERCENTAGE and \
            AdjustmentType(base.adjustment_type) is not AdjustmentType.FIXED_PRICE:
        raise InvalidBaseChainError(
            "Percentage rate plans must use a FixedPrice rate plan as their base")

    visited = {rate_plan_id} if rate_plan_id is not None else set()
    hops = 1
    current = base
    while AdjustmentType(current.adjustment_type).is_derived:
        if current.id in visited:
            raise InvalidBaseChainError("Base rate plan chain contains a cycle")
        visited.add(current.id)
        if current.base_rate_plan_id is None:
            raise InvalidBaseChainError(
                f"Rate plan {current.id} in the base chain has no base rate plan")
        if current.base_rate_plan_id in visited:
            raise InvalidBaseChainError("Base rate plan chain contains a cycle")
        nxt = links.get(current.base_rate_plan_id)
        if nxt is None or nxt.property_id != property_id:
            raise InvalidBaseChainError(
                f"Rate plan {current.id} in the base chain references a missing base rate plan")
        current = nxt
        hops += 1
        if hops > max_depth:
            raise InvalidBaseChainError(
                f"Base rate plan chain is longer than {max_depth} levels")

    return hops
