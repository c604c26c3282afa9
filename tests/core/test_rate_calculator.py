"""
Tests for core/rates/calculator.py
Covers: price_for_night, price_for_stay, recursive base resolution, chain guards
"""
import pytest
from datetime import date
from decimal import Decimal

from core.rates.calculator import NightlyRateCalculator
from core.rates.errors import (
    MissingBaseRatePlanError, RateChainCycleError, RateChainDepthError, RateResolutionError
)
from core.rates.models import RatePlan, RatePlanSnapshot, AdjustmentType as AT

NIGHT = date(2026, 11, 2)


def _plan(plan_id, adjustment_type, value, base=None, overrides=None, is_active=True):
    return RatePlan(
        id=plan_id,
        property_id=1,
        name=f"Plan {plan_id}",
        adjustment_type=adjustment_type,
        adjustment_value=Decimal(value),
        base_rate_plan_id=base,
        is_active=is_active,
        price_overrides=overrides or {},
    )


def _calc(*plans, max_depth=10):
    return NightlyRateCalculator(RatePlanSnapshot.from_plans(1, plans), max_depth=max_depth)


class TestPriceForNight:

    def test_fixed_price_identity(self):
        plan = _plan(1, AT.FIXED_PRICE, "1000")
        assert _calc(plan).price_for_night(plan, NIGHT) == Decimal("1000.00")

    def test_percentage_of_base(self):
        base = _plan(1, AT.FIXED_PRICE, "1000")
        derived = _plan(2, AT.PERCENTAGE, "10", base=1)
        assert _calc(base, derived).price_for_night(derived, NIGHT) == Decimal("900.00")

    def test_negative_percentage_is_markup(self):
        base = _plan(1, AT.FIXED_PRICE, "200")
        derived = _plan(2, AT.PERCENTAGE, "-25", base=1)
        assert _calc(base, derived).price_for_night(derived, NIGHT) == Decimal("250.00")

    def test_percentage_never_negative(self):
        base = _plan(1, AT.FIXED_PRICE, "100")
        derived = _plan(2, AT.PERCENTAGE, "100", base=1)
        assert _calc(base, derived).price_for_night(derived, NIGHT) == Decimal("0.00")

    def test_fixed_discount_floors_at_zero(self):
        base = _plan(1, AT.FIXED_PRICE, "80")
        derived = _plan(2, AT.FIXED_DISCOUNT, "100", base=1)
        assert _calc(base, derived).price_for_night(derived, NIGHT) == Decimal("0.00")

    def test_override_wins(self):
        plan = _plan(1, AT.FIXED_PRICE, "1000", overrides={NIGHT: Decimal("1234.50")})
        assert _calc(plan).price_for_night(plan, NIGHT) == Decimal("1234.50")

    def test_base_override_flows_into_derived(self):
        base = _plan(1, AT.FIXED_PRICE, "1000", overrides={NIGHT: Decimal("500")})
        derived = _plan(2, AT.PERCENTAGE, "10", base=1)
        assert _calc(base, derived).price_for_night(derived, NIGHT) == Decimal("450.00")

    def test_multi_level_chain(self):
        base = _plan(1, AT.FIXED_PRICE, "1000")
        mid = _plan(2, AT.FIXED_DISCOUNT, "100", base=1)
        top = _plan(3, AT.FIXED_DISCOUNT, "50", base=2)
        assert _calc(base, mid, top).price_for_night(top, NIGHT) == Decimal("850.00")

    def test_inactive_base_still_resolves(self):
        base = _plan(1, AT.FIXED_PRICE, "300", is_active=False)
        derived = _plan(2, AT.PERCENTAGE, "50", base=1)
        assert _calc(base, derived).price_for_night(derived, NIGHT) == Decimal("150.00")

    def test_rounding_half_up(self):
        base = _plan(1, AT.FIXED_PRICE, "10.05")
        derived = _plan(2, AT.PERCENTAGE, "50", base=1)
        assert _calc(base, derived).price_for_night(derived, NIGHT) == Decimal("5.03")


class TestChainGuards:

    def test_missing_base(self):
        derived = _plan(2, AT.PERCENTAGE, "10", base=99)
        with pytest.raises(MissingBaseRatePlanError):
            _calc(derived).price_for_night(derived, NIGHT)

    def test_cycle(self):
        a = _plan(1, AT.FIXED_DISCOUNT, "10", base=2)
        b = _plan(2, AT.FIXED_DISCOUNT, "10", base=1)
        with pytest.raises(RateChainCycleError):
            _calc(a, b).price_for_night(a, NIGHT)

    def test_depth_cap(self):
        plans = [_plan(1, AT.FIXED_PRICE, "1000")]
        plans += [_plan(i, AT.FIXED_DISCOUNT, "1", base=i - 1) for i in range(2, 6)]
        calc = _calc(*plans, max_depth=3)
        with pytest.raises(RateChainDepthError):
            calc.price_for_night(plans[-1], NIGHT)

    def test_errors_share_base_class(self):
        derived = _plan(2, AT.PERCENTAGE, "10", base=99)
        with pytest.raises(RateResolutionError) as exc_info:
            _calc(derived).price_for_night(derived, NIGHT)
        assert exc_info.value.rate_plan_id == 2


class TestPriceForStay:

    def test_three_nights(self):
        plan = _plan(1, AT.FIXED_PRICE, "1000")
        stay = _calc(plan).price_for_stay(plan, date(2026, 11, 2), date(2026, 11, 5))
        assert stay.nights == 3
        assert stay.total == Decimal("3000.00")
        assert stay.average == Decimal("1000.00")
        assert [n.date for n in stay.nightly_rates] == [
            date(2026, 11, 2), date(2026, 11, 3), date(2026, 11, 4)
        ]

    def test_override_flagged(self):
        plan = _plan(1, AT.FIXED_PRICE, "100", overrides={date(2026, 11, 3): Decimal("200")})
        stay = _calc(plan).price_for_stay(plan, date(2026, 11, 2), date(2026, 11, 4))
        assert [n.is_override for n in stay.nightly_rates] == [False, True]
        assert stay.total == Decimal("300.00")
        assert stay.average == Decimal("150.00")

    def test_average_rounded(self):
        plan = _plan(1, AT.FIXED_PRICE, "100",
                     overrides={date(2026, 11, 2): Decimal("100.01"), date(2026, 11, 3): Decimal("100.01")})
        stay = _calc(plan).price_for_stay(plan, date(2026, 11, 2), date(2026, 11, 5))
        assert stay.total == Decimal("300.02")
        assert stay.average == Decimal("100.01")
