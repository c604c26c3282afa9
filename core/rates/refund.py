"""
core/rates/refund.py

Cancellation refund calculator.

The tier with the largest days_before_check_in not exceeding the actual days
before check-in applies; when none qualifies the most restrictive tier (the
smallest days_before_check_in) is used.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from core.rates.calculator import HUNDRED, ZERO, quantize_money
from core.rates.dates import DateLike, ceil_days_between
from core.rates.models import CancellationPolicy, CancellationTier

NO_POLICY_DESCRIPTION = "No refund policy defined."


@dataclass(frozen=True)
class RefundQuote:
    """
    Refund for cancelling a stay.

    Attributes:
        refund_amount: Amount returned to the guest
        refund_percentage: Percentage of the total price refunded
        description: Tier description or a generated sentence
        days_until_check_in: ceil((check_in - cancellation_date) / 1 day)
        tier_days_before_check_in: Selected tier, None without a policy
    """

    refund_amount: Decimal
    refund_percentage: Decimal
    description: str
    days_until_check_in: int
    tier_days_before_check_in: Optional[int] = None


def select_tier(policy: Optional[CancellationPolicy], days_until_check_in: int) -> Optional[CancellationTier]:
    if policy is None or not policy.tiers:
        return None
    tiers = policy.sorted_tiers()
    qualifying = [t for t in tiers if t.days_before_check_in <= days_until_check_in]
    if qualifying:
        return qualifying[-1]
    return tiers[0]


def describe_tier(tier: CancellationTier) -> str:
    if tier.description:
        return tier.description
    pct = Decimal(tier.refund_percentage).normalize()
    if tier.days_before_check_in == 0:
        return f"{pct:f}% refund when cancelled before check-in."
    return f"{pct:f}% refund when cancelled at least {tier.days_before_check_in} days before check-in."


def calculate_refund(total_price: Decimal, check_in: DateLike, cancellation_date: DateLike,
                     policy: Optional[CancellationPolicy]) -> RefundQuote:
    days_until_check_in = ceil_days_between(check_in, cancellation_date)
    tier = select_tier(policy, days_until_check_in)
    if tier is None:
        return RefundQuote(
            refund_amount=quantize_money(ZERO),
            refund_percentage=quantize_money(ZERO),
            description=NO_POLICY_DESCRIPTION,
            days_until_check_in=days_until_check_in,
        )

    pct = Decimal(tier.refund_percentage)
    return RefundQuote(
        refund_amount=quantize_money(Decimal(total_price) * pct / HUNDRED),
        refund_percentage=quantize_money(pct),
        description=describe_tier(tier),
        days_until_check_in=days_until_check_in,
        tier_days_before_check_in=tier.days_before_check_in,
    )
