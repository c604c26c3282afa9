"""
价格管理路由
价格计划的每日价格覆盖
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import User
from app.models.schemas import (
    PriceOverrideCreate, PriceOverrideUpdate, PriceOverrideResponse, BulkPriceUpdate,
    BulkPriceResult, BulkDeleteResult, PriceStats, PriceGaps,
    CopyPricesRequest, CopyPricesResult
)
from app.routers.errors import http_error
from app.services.price_service import PriceService
from app.security.auth import get_current_user

router = APIRouter(prefix="/rate-plans/{rate_plan_id}/prices", tags=["价格管理"])
price_router = APIRouter(prefix="/prices", tags=["价格管理"])


@router.get("", response_model=List[PriceOverrideResponse])
def list_prices(
    rate_plan_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(365),
    offset: int = Query(0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """获取每日价格列表"""
    service = PriceService(db)
    try:
        return service.get_prices(current_user.id, rate_plan_id, start_date, end_date, limit, offset)
    except ValueError as e:
        raise http_error(e)


@router.post("", response_model=PriceOverrideResponse)
def upsert_price(
    rate_plan_id: int,
    data: PriceOverrideCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """设置某日价格"""
    service = PriceService(db)
    try:
        return service.upsert_price(current_user.id, rate_plan_id, data)
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.post("/bulk", response_model=BulkPriceResult)
def bulk_upsert_prices(
    rate_plan_id: int,
    data: BulkPriceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """批量设置每日价格"""
    service = PriceService(db)
    try:
        return service.bulk_upsert_prices(current_user.id, rate_plan_id, data.updates)
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.delete("/bulk", response_model=BulkDeleteResult)
def bulk_delete_prices(
    rate_plan_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """删除日期区间内的每日价格"""
    service = PriceService(db)
    try:
        deleted = service.bulk_delete_prices(current_user.id, rate_plan_id, start_date, end_date)
    except ValueError as e:
        db.rollback()
        raise http_error(e)
    return BulkDeleteResult(deleted_count=deleted)


@router.get("/stats", response_model=PriceStats)
def get_price_stats(
    rate_plan_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """每日价格统计"""
    service = PriceService(db)
    try:
        return service.get_price_stats(current_user.id, rate_plan_id, start_date, end_date)
    except ValueError as e:
        raise http_error(e)


@router.get("/gaps", response_model=PriceGaps)
def get_price_gaps(
    rate_plan_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """未设置每日价格的日期"""
    service = PriceService(db)
    try:
        return service.get_price_gaps(current_user.id, rate_plan_id, start_date, end_date)
    except ValueError as e:
        raise http_error(e)


@router.post("/copy", response_model=CopyPricesResult)
def copy_prices(
    rate_plan_id: int,
    data: CopyPricesRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """复制日期区间的每日价格"""
    service = PriceService(db)
    try:
        return service.copy_prices(
            current_user.id, rate_plan_id,
            data.source_start_date, data.source_end_date, data.target_start_date
        )
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@price_router.put("/{price_id}", response_model=PriceOverrideResponse)
def update_price(
    price_id: int,
    data: PriceOverrideUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """更新每日价格"""
    service = PriceService(db)
    try:
        return service.update_price(current_user.id, price_id, data.amount)
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@price_router.delete("/{price_id}")
def delete_price(
    price_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """删除每日价格"""
    service = PriceService(db)
    try:
        service.delete_price(current_user.id, price_id)
        return {"message": "价格已删除"}
    except ValueError as e:
        db.rollback()
        raise http_error(e)
