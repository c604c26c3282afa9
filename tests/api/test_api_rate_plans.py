"""
价格计划 API 单元测试
覆盖 /properties/{property_id}/rate-plans、搜索、退款与元数据端点
"""
from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient

from app.models.ontology import RatePlan, Reservation, ReservationStatus
from core.rates.models import AdjustmentType


def _day(offset):
    return (date.today() + timedelta(days=offset)).isoformat()


def _create(client, prop_id, headers, **overrides):
    payload = {
        "name": "标准价",
        "adjustment_type": "FixedPrice",
        "adjustment_value": "1000",
    }
    payload.update(overrides)
    return client.post(f"/properties/{prop_id}/rate-plans", json=payload, headers=headers)


class TestRatePlanCrud:
    """价格计划增删改查"""

    def test_create_rate_plan(self, client: TestClient, auth_headers, sample_property):
        """测试创建价格计划"""
        response = _create(client, sample_property.id, auth_headers, active_days=[1, 2, 3],
                           cancellation_policy={"tiers": [
                               {"days_before_check_in": 7, "refund_percentage": "100"},
                           ]})
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "标准价"
        assert data["adjustment_type"] == "FixedPrice"
        assert Decimal(data["adjustment_value"]) == Decimal("1000")
        assert data["active_days"] == [1, 2, 3]
        assert data["priority"] == 100
        assert data["cancellation_policy"]["tiers"][0]["days_before_check_in"] == 7

    def test_create_requires_auth(self, client: TestClient, sample_property):
        """测试未登录创建"""
        response = _create(client, sample_property.id, {})
        assert response.status_code == 401

    def test_create_invalid_token(self, client: TestClient, sample_property):
        response = _create(client, sample_property.id, {"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_create_on_other_owners_property(self, client: TestClient, other_auth_headers, sample_property):
        """测试在他人房源下创建"""
        response = _create(client, sample_property.id, other_auth_headers)
        assert response.status_code == 404

    def test_create_validation_error(self, client: TestClient, auth_headers, sample_property):
        """测试业务校验失败返回 400"""
        response = _create(client, sample_property.id, auth_headers, adjustment_value="-5")
        assert response.status_code == 400

    def test_create_percentage_without_base(self, client: TestClient, auth_headers, sample_property):
        response = _create(client, sample_property.id, auth_headers,
                           adjustment_type="Percentage", adjustment_value="10")
        assert response.status_code == 400

    def test_create_priority_out_of_range(self, client: TestClient, auth_headers, sample_property):
        """测试请求结构错误返回 422"""
        response = _create(client, sample_property.id, auth_headers, priority=1000)
        assert response.status_code == 422

    def test_list_and_get(self, client: TestClient, auth_headers, sample_property):
        plan_id = _create(client, sample_property.id, auth_headers).json()["id"]
        _create(client, sample_property.id, auth_headers, name="周末价", priority=10)

        response = client.get(f"/properties/{sample_property.id}/rate-plans", headers=auth_headers)
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["周末价", "标准价"]

        response = client.get(f"/properties/{sample_property.id}/rate-plans/{plan_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["reservation_count"] == 0

    def test_get_missing(self, client: TestClient, auth_headers, sample_property):
        response = client.get(f"/properties/{sample_property.id}/rate-plans/999", headers=auth_headers)
        assert response.status_code == 404

    def test_update(self, client: TestClient, auth_headers, sample_property):
        plan_id = _create(client, sample_property.id, auth_headers).json()["id"]
        response = client.put(
            f"/properties/{sample_property.id}/rate-plans/{plan_id}",
            json={"name": "旺季价", "allow_concurrent_rates": False},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "旺季价"
        assert response.json()["allow_concurrent_rates"] is False

    def test_replace_restrictions(self, client: TestClient, auth_headers, sample_property):
        plan_id = _create(client, sample_property.id, auth_headers,
                          restrictions=[{"type": "MinGuests", "value": 2}]).json()["id"]
        response = client.put(
            f"/properties/{sample_property.id}/rate-plans/{plan_id}/restrictions",
            json={"restrictions": [{"type": "MinLengthOfStay", "value": 3}]},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert [r["type"] for r in response.json()["restrictions"]] == ["MinLengthOfStay"]


class TestRatePlanDelete:
    """智能删除"""

    def test_hard_delete(self, client: TestClient, auth_headers, sample_property, db_session):
        plan_id = _create(client, sample_property.id, auth_headers).json()["id"]
        response = client.delete(f"/properties/{sample_property.id}/rate-plans/{plan_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["outcome"] == "hard"
        assert db_session.query(RatePlan).count() == 0

    def test_soft_delete(self, client: TestClient, auth_headers, sample_property, db_session):
        plan_id = _create(client, sample_property.id, auth_headers).json()["id"]
        db_session.add(Reservation(
            property_id=sample_property.id, rate_plan_id=plan_id, guest_name="张三",
            check_in_date=date.today(), check_out_date=date.today() + timedelta(days=2),
            total_price=Decimal("2000"), status=ReservationStatus.COMPLETED,
        ))
        db_session.commit()

        response = client.delete(f"/properties/{sample_property.id}/rate-plans/{plan_id}", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "soft"
        assert data["details"]["reservation_count"] == 1
        plan = db_session.query(RatePlan).filter(RatePlan.id == plan_id).first()
        db_session.refresh(plan)
        assert plan.is_active is False

    def test_blocked_delete(self, client: TestClient, auth_headers, sample_property):
        base_id = _create(client, sample_property.id, auth_headers).json()["id"]
        _create(client, sample_property.id, auth_headers, name="早鸟",
                adjustment_type="Percentage", adjustment_value="10", base_rate_plan_id=base_id)

        response = client.delete(f"/properties/{sample_property.id}/rate-plans/{base_id}", headers=auth_headers)
        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["outcome"] == "blocked"
        assert detail["details"]["derived_rate_plans_count"] == 1
        assert detail["details"]["derived_rate_plan_names"] == ["早鸟"]


class TestSearchApi:
    """客人侧搜索"""

    def test_search_single_plan(self, client: TestClient, auth_headers, sample_property):
        _create(client, sample_property.id, auth_headers)
        response = client.post(
            f"/properties/{sample_property.id}/rate-plans/search",
            params={"check_in_date": _day(5), "check_out_date": _day(8), "num_guests": 2},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["currency"] == "AED"
        assert len(data["available_rates"]) == 1
        rate = data["available_rates"][0]
        assert Decimal(rate["total_price"]) == Decimal("3000")
        assert Decimal(rate["average_nightly_rate"]) == Decimal("1000")
        assert rate["savings"] is None
        assert len(rate["nightly_rates"]) == 3

    def test_search_savings(self, client: TestClient, auth_headers, sample_property):
        base_id = _create(client, sample_property.id, auth_headers).json()["id"]
        _create(client, sample_property.id, auth_headers, name="早鸟",
                adjustment_type="Percentage", adjustment_value="25", base_rate_plan_id=base_id)
        response = client.post(
            f"/properties/{sample_property.id}/rate-plans/search",
            params={"check_in_date": _day(5), "check_out_date": _day(7), "num_guests": 2},
        )
        rates = response.json()["available_rates"]
        assert [r["rate_plan"]["name"] for r in rates] == ["早鸟", "标准价"]
        assert rates[0]["savings"]["compared_to"] == "highest rate"
        assert Decimal(rates[0]["savings"]["percentage"]) == Decimal("25")

    def test_search_empty_message(self, client: TestClient, sample_property):
        response = client.post(
            f"/properties/{sample_property.id}/rate-plans/search",
            params={"check_in_date": _day(5), "check_out_date": _day(8), "num_guests": 2},
        )
        assert response.status_code == 200
        assert response.json()["message"] == "No rates available"

    def test_search_invalid_dates(self, client: TestClient, sample_property):
        response = client.post(
            f"/properties/{sample_property.id}/rate-plans/search",
            params={"check_in_date": _day(8), "check_out_date": _day(5), "num_guests": 2},
        )
        assert response.status_code == 400

    def test_search_missing_params(self, client: TestClient, sample_property):
        response = client.post(f"/properties/{sample_property.id}/rate-plans/search")
        assert response.status_code == 422

    def test_search_unknown_property(self, client: TestClient):
        response = client.post(
            "/properties/999/rate-plans/search",
            params={"check_in_date": _day(5), "check_out_date": _day(8), "num_guests": 2},
        )
        assert response.status_code == 404


class TestRefundApi:
    """取消退款"""

    def test_refund(self, client: TestClient, auth_headers, sample_property, db_session):
        plan_id = _create(client, sample_property.id, auth_headers, cancellation_policy={"tiers": [
            {"days_before_check_in": 7, "refund_percentage": "100"},
            {"days_before_check_in": 0, "refund_percentage": "0"},
        ]}).json()["id"]
        reservation = Reservation(
            property_id=sample_property.id, rate_plan_id=plan_id, guest_name="张三",
            check_in_date=date.today() + timedelta(days=20),
            check_out_date=date.today() + timedelta(days=23),
            total_price=Decimal("3000"),
        )
        db_session.add(reservation)
        db_session.commit()

        response = client.get(
            f"/reservations/{reservation.id}/cancellation-refund",
            params={"cancellation_date": _day(10)},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["days_until_check_in"] == 10
        assert Decimal(data["refund_amount"]) == Decimal("3000")
        assert Decimal(data["refund_percentage"]) == Decimal("100")

    def test_refund_unknown_reservation(self, client: TestClient):
        response = client.get("/reservations/999/cancellation-refund")
        assert response.status_code == 404


class TestMetadataApi:

    def test_adjustment_types(self, client: TestClient):
        response = client.get("/rate-plans/metadata/adjustment-types")
        assert response.status_code == 200
        assert [t["value"] for t in response.json()] == [t.value for t in AdjustmentType]

    def test_health(self, client: TestClient):
        assert client.get("/health").json() == {"status": "healthy"}
