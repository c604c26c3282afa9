"""
Tests for app/services/price_service.py
Covers: get_prices, upsert_price, bulk_upsert_prices, update_price, delete_price,
        bulk_delete_prices, get_price_stats, get_price_gaps, copy_prices
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from app.models.ontology import User, Property, RatePlan, RatePlanPrice
from app.models.schemas import PriceOverrideCreate
from app.services.exceptions import NotFoundError
from app.services.price_service import PriceService
from core.rates.models import AdjustmentType


# ── helpers ──────────────────────────────────────────────────────────

def _day(offset):
    return date.today() + timedelta(days=offset)


def _make_price(db, plan, day, amount="500"):
    p = RatePlanPrice(rate_plan_id=plan.id, date=day, amount=Decimal(amount))
    db.add(p)
    db.flush()
    return p


@pytest.fixture
def setup(db_session):
    owner = User(email="host@example.com", name="房东", is_active=True)
    db_session.add(owner)
    db_session.flush()
    prop = Property(owner_id=owner.id, name="海景别墅")
    db_session.add(prop)
    db_session.flush()
    plan = RatePlan(
        property_id=prop.id, name="标准价",
        adjustment_type=AdjustmentType.FIXED_PRICE, adjustment_value=Decimal("1000"),
    )
    db_session.add(plan)
    db_session.commit()
    return owner, plan


# ── tests ────────────────────────────────────────────────────────────

class TestUpsertPrice:

    def test_create_then_update_same_date(self, db_session, setup):
        owner, plan = setup
        svc = PriceService(db_session)
        first = svc.upsert_price(owner.id, plan.id, PriceOverrideCreate(date=_day(5), amount=Decimal("800")))
        second = svc.upsert_price(owner.id, plan.id, PriceOverrideCreate(date=_day(5), amount=Decimal("850")))
        assert first.id == second.id
        assert second.amount == Decimal("850")
        assert db_session.query(RatePlanPrice).count() == 1

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("100000")])
    def test_amount_bounds(self, db_session, setup, amount):
        owner, plan = setup
        with pytest.raises(ValueError):
            PriceService(db_session).upsert_price(owner.id, plan.id, PriceOverrideCreate(date=_day(5), amount=amount))

    def test_max_amount_allowed(self, db_session, setup):
        owner, plan = setup
        price = PriceService(db_session).upsert_price(
            owner.id, plan.id, PriceOverrideCreate(date=_day(5), amount=Decimal("99999.99")))
        assert price.amount == Decimal("99999.99")

    def test_past_date_rejected(self, db_session, setup):
        owner, plan = setup
        with pytest.raises(ValueError):
            PriceService(db_session).upsert_price(owner.id, plan.id, PriceOverrideCreate(date=_day(-1), amount=Decimal("10")))

    def test_other_owner_not_found(self, db_session, setup):
        _, plan = setup
        stranger = User(email="x@example.com", name="X", is_active=True)
        db_session.add(stranger)
        db_session.commit()
        with pytest.raises(NotFoundError):
            PriceService(db_session).upsert_price(stranger.id, plan.id, PriceOverrideCreate(date=_day(5), amount=Decimal("10")))


class TestBulkUpsert:

    def test_collects_errors_and_writes_valid(self, db_session, setup):
        owner, plan = setup
        result = PriceService(db_session).bulk_upsert_prices(owner.id, plan.id, [
            PriceOverrideCreate(date=_day(1), amount=Decimal("100")),
            PriceOverrideCreate(date=_day(2), amount=Decimal("0")),
            PriceOverrideCreate(date=_day(-3), amount=Decimal("100")),
            PriceOverrideCreate(date=_day(4), amount=Decimal("120")),
        ])
        assert result["success"] == 2
        assert [e["date"] for e in result["errors"]] == [_day(2), _day(-3)]
        assert db_session.query(RatePlanPrice).count() == 2

    def test_too_many_updates(self, db_session, setup):
        owner, plan = setup
        updates = [PriceOverrideCreate(date=_day(i), amount=Decimal("100")) for i in range(366)]
        with pytest.raises(ValueError):
            PriceService(db_session).bulk_upsert_prices(owner.id, plan.id, updates)


class TestUpdateDelete:

    def test_update_price(self, db_session, setup):
        owner, plan = setup
        price = _make_price(db_session, plan, _day(3))
        db_session.commit()
        updated = PriceService(db_session).update_price(owner.id, price.id, Decimal("700"))
        assert updated.amount == Decimal("700")

    def test_past_price_cannot_be_changed(self, db_session, setup):
        owner, plan = setup
        price = _make_price(db_session, plan, _day(-2))
        db_session.commit()
        svc = PriceService(db_session)
        with pytest.raises(ValueError):
            svc.update_price(owner.id, price.id, Decimal("700"))
        with pytest.raises(ValueError):
            svc.delete_price(owner.id, price.id)

    def test_delete_price(self, db_session, setup):
        owner, plan = setup
        price = _make_price(db_session, plan, _day(3))
        db_session.commit()
        assert PriceService(db_session).delete_price(owner.id, price.id) is True
        assert db_session.query(RatePlanPrice).count() == 0

    def test_bulk_delete_inclusive_range(self, db_session, setup):
        owner, plan = setup
        for i in range(1, 6):
            _make_price(db_session, plan, _day(i))
        db_session.commit()
        deleted = PriceService(db_session).bulk_delete_prices(owner.id, plan.id, _day(2), _day(4))
        assert deleted == 3
        assert sorted(p.date for p in db_session.query(RatePlanPrice).all()) == [_day(1), _day(5)]

    def test_bulk_delete_validation(self, db_session, setup):
        owner, plan = setup
        svc = PriceService(db_session)
        with pytest.raises(ValueError):
            svc.bulk_delete_prices(owner.id, plan.id, _day(4), _day(2))
        with pytest.raises(ValueError):
            svc.bulk_delete_prices(owner.id, plan.id, _day(-1), _day(2))
        with pytest.raises(ValueError):
            svc.bulk_delete_prices(owner.id, plan.id, _day(1), _day(400))


class TestQueries:

    def test_list_ordered_with_range_and_paging(self, db_session, setup):
        owner, plan = setup
        for i in (5, 1, 3, 2):
            _make_price(db_session, plan, _day(i))
        db_session.commit()
        svc = PriceService(db_session)
        assert [p.date for p in svc.get_prices(owner.id, plan.id)] == [_day(1), _day(2), _day(3), _day(5)]
        assert [p.date for p in svc.get_prices(owner.id, plan.id, _day(2), _day(3))] == [_day(2), _day(3)]
        assert [p.date for p in svc.get_prices(owner.id, plan.id, limit=2, offset=1)] == [_day(2), _day(3)]

    def test_list_limit_bounds(self, db_session, setup):
        owner, plan = setup
        with pytest.raises(ValueError):
            PriceService(db_session).get_prices(owner.id, plan.id, limit=0)
        with pytest.raises(ValueError):
            PriceService(db_session).get_prices(owner.id, plan.id, limit=366)

    def test_stats(self, db_session, setup):
        owner, plan = setup
        _make_price(db_session, plan, _day(1), "100")
        _make_price(db_session, plan, _day(2), "200")
        _make_price(db_session, plan, _day(3), "400")
        db_session.commit()
        stats = PriceService(db_session).get_price_stats(owner.id, plan.id)
        assert stats.count == 3
        assert stats.average_amount == Decimal("233.33")
        assert stats.min_amount == Decimal("100.00")
        assert stats.max_amount == Decimal("400.00")
        assert stats.first_date == _day(1)
        assert stats.last_date == _day(3)

    def test_stats_empty(self, db_session, setup):
        owner, plan = setup
        stats = PriceService(db_session).get_price_stats(owner.id, plan.id)
        assert stats.count == 0
        assert stats.average_amount is None

    def test_gaps(self, db_session, setup):
        owner, plan = setup
        _make_price(db_session, plan, _day(2))
        _make_price(db_session, plan, _day(3))
        db_session.commit()
        gaps = PriceService(db_session).get_price_gaps(owner.id, plan.id, _day(1), _day(4))
        assert gaps.dates == [_day(1), _day(4)]
        assert gaps.gap_count == 2


class TestCopyPrices:

    def test_copy_keeps_offsets(self, db_session, setup):
        owner, plan = setup
        _make_price(db_session, plan, _day(1), "100")
        _make_price(db_session, plan, _day(3), "300")
        db_session.commit()
        result = PriceService(db_session).copy_prices(owner.id, plan.id, _day(1), _day(3), _day(10))
        assert result["copied_count"] == 2
        copied = {p.date: p.amount for p in db_session.query(RatePlanPrice).filter(RatePlanPrice.date >= _day(10)).all()}
        assert copied == {_day(10): Decimal("100"), _day(12): Decimal("300")}

    def test_empty_source_rejected(self, db_session, setup):
        owner, plan = setup
        with pytest.raises(ValueError):
            PriceService(db_session).copy_prices(owner.id, plan.id, _day(1), _day(3), _day(10))

    def test_past_target_rejected(self, db_session, setup):
        owner, plan = setup
        _make_price(db_session, plan, _day(1))
        db_session.commit()
        with pytest.raises(ValueError):
            PriceService(db_session).copy_prices(owner.id, plan.id, _day(1), _day(3), _day(-10))
