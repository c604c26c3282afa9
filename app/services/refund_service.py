"""
退款服务 - 取消预订的退款预估
"""
from typing import Optional, Union
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy.orm import Session
from app.models.ontology import Reservation
from app.models.schemas import RefundResponse
from app.services.exceptions import NotFoundError
from app.services.rate_plan_store import to_cancellation_policy
from core.rates.refund import calculate_refund


class RefundService:
    """退款服务"""

    def __init__(self, db: Session):
        self.db = db

    def calculate(self, reservation_id: int,
                  cancellation_date: Optional[Union[date, datetime]] = None) -> RefundResponse:
        """按价格计划的取消政策计算退款"""
        reservation = self.db.query(Reservation).filter(Reservation.id == reservation_id).first()
        if not reservation:
            raise NotFoundError("预订不存在")

        policy = None
        if reservation.rate_plan is not None:
            policy = to_cancellation_policy(reservation.rate_plan.cancellation_policy)

        total_price = Decimal(reservation.total_price)
        quote = calculate_refund(
            total_price,
            reservation.check_in_date,
            cancellation_date or datetime.now(),
            policy,
        )
        return RefundResponse(
            reservation_id=reservation.id,
            total_price=total_price,
            days_until_check_in=quote.days_until_check_in,
            refund_amount=quote.refund_amount,
            refund_percentage=quote.refund_percentage,
            description=quote.description,
            tier_days_before_check_in=quote.tier_days_before_check_in,
        )
