"""
预订路由
取消退款预估，面向客人，无需登录
"""
from typing import Optional
from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.schemas import RefundResponse
from app.routers.errors import http_error
from app.services.refund_service import RefundService

router = APIRouter(prefix="/reservations", tags=["预订管理"])


@router.get("/{reservation_id}/cancellation-refund", response_model=RefundResponse)
def get_cancellation_refund(
    reservation_id: int,
    cancellation_date: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """按取消政策计算退款金额"""
    service = RefundService(db)
    try:
        return service.calculate(reservation_id, cancellation_date)
    except ValueError as e:
        raise http_error(e)
