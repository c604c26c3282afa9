"""
价格计划路由
房源所有者管理价格计划；搜索接口面向客人，无需登录
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import RatePlan, User
from app.models.schemas import (
    RatePlanCreate, RatePlanUpdate, RatePlanResponse, RatePlanDeleteResponse,
    RestrictionsReplace, AdjustmentTypeInfo, RateSearchResponse
)
from app.routers.errors import http_error
from app.services.rate_plan_service import RatePlanService
from app.services.rate_search_service import RateSearchService
from app.security.auth import get_current_user

router = APIRouter(prefix="/properties/{property_id}/rate-plans", tags=["价格计划"])
metadata_router = APIRouter(prefix="/rate-plans/metadata", tags=["价格计划"])

DELETE_MESSAGES = {
    "hard": "价格计划已删除",
    "soft": "价格计划已停用（存在关联预订）",
}


def _to_response(plan: RatePlan, reservation_count: int = 0) -> RatePlanResponse:
    response = RatePlanResponse.model_validate(plan)
    response.reservation_count = reservation_count
    return response


@metadata_router.get("/adjustment-types", response_model=List[AdjustmentTypeInfo])
def list_adjustment_types(db: Session = Depends(get_db)):
    """获取调整类型元数据"""
    return RatePlanService(db).get_adjustment_types()


@router.post("/search", response_model=RateSearchResponse)
def search_rate_plans(
    property_id: int,
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    num_guests: int = Query(...),
    booking_date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """搜索可用价格计划"""
    service = RateSearchService(db)
    try:
        return service.search(property_id, check_in_date, check_out_date, num_guests, booking_date)
    except ValueError as e:
        raise http_error(e)


@router.get("", response_model=List[RatePlanResponse])
def list_rate_plans(
    property_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """获取房源的价格计划列表"""
    service = RatePlanService(db)
    try:
        plans = service.get_rate_plans(current_user.id, property_id)
    except ValueError as e:
        raise http_error(e)
    return [_to_response(plan, count) for plan, count in plans]


@router.get("/{rate_plan_id}", response_model=RatePlanResponse)
def get_rate_plan(
    property_id: int,
    rate_plan_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """获取价格计划详情"""
    service = RatePlanService(db)
    try:
        plan = service.get_rate_plan(current_user.id, property_id, rate_plan_id)
    except ValueError as e:
        raise http_error(e)
    return _to_response(plan, service.count_reservations(plan.id))


@router.post("", response_model=RatePlanResponse, status_code=status.HTTP_201_CREATED)
def create_rate_plan(
    property_id: int,
    data: RatePlanCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """创建价格计划"""
    service = RatePlanService(db)
    try:
        plan = service.create_rate_plan(current_user.id, property_id, data)
    except ValueError as e:
        db.rollback()
        raise http_error(e)
    return _to_response(plan)


@router.put("/{rate_plan_id}", response_model=RatePlanResponse)
def update_rate_plan(
    property_id: int,
    rate_plan_id: int,
    data: RatePlanUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """更新价格计划"""
    service = RatePlanService(db)
    try:
        plan = service.update_rate_plan(current_user.id, property_id, rate_plan_id, data)
    except ValueError as e:
        db.rollback()
        raise http_error(e)
    return _to_response(plan, service.count_reservations(plan.id))


@router.put("/{rate_plan_id}/restrictions", response_model=RatePlanResponse)
def replace_restrictions(
    property_id: int,
    rate_plan_id: int,
    data: RestrictionsReplace,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """替换价格计划的限制条件"""
    service = RatePlanService(db)
    try:
        plan = service.replace_restrictions(current_user.id, property_id, rate_plan_id, data.restrictions)
    except ValueError as e:
        db.rollback()
        raise http_error(e)
    return _to_response(plan, service.count_reservations(plan.id))


@router.delete("/{rate_plan_id}", response_model=RatePlanDeleteResponse)
def delete_rate_plan(
    property_id: int,
    rate_plan_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """智能删除价格计划：有派生计划时拒绝，有预订时停用，否则删除"""
    service = RatePlanService(db)
    try:
        outcome = service.delete_rate_plan(current_user.id, property_id, rate_plan_id)
    except ValueError as e:
        db.rollback()
        raise http_error(e)
    return RatePlanDeleteResponse(
        outcome=outcome.kind,
        message=DELETE_MESSAGES[outcome.kind],
        details=outcome.details(),
    )
