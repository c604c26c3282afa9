"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Any, Dict
from pydantic import BaseModel, Field, field_validator, ConfigDict
from app.models.ontology import PolicyType
from core.rates.models import AdjustmentType, RestrictionType


# ============== 限制条件 Schemas ==============

class RestrictionInput(BaseModel):
    type: RestrictionType
    value: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class RestrictionResponse(BaseModel):
    id: int
    type: RestrictionType
    value: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


class RestrictionsReplace(BaseModel):
    restrictions: List[RestrictionInput] = Field(default_factory=list)


# ============== 取消政策 Schemas ==============

class CancellationTierInput(BaseModel):
    days_before_check_in: int
    refund_percentage: Decimal
    description: Optional[str] = Field(None, max_length=500)


class CancellationPolicyInput(BaseModel):
    tiers: List[CancellationTierInput] = Field(default_factory=list)


class CancellationTierResponse(BaseModel):
    days_before_check_in: int
    refund_percentage: Decimal
    description: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class CancellationPolicyResponse(BaseModel):
    tiers: List[CancellationTierResponse] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


# ============== 价格计划 Schemas ==============

class RatePlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    policy_type: PolicyType = PolicyType.FULLY_FLEXIBLE
    includes_breakfast: bool = False
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    base_rate_plan_id: Optional[int] = None
    priority: int = Field(default=100, ge=1, le=999)
    allow_concurrent_rates: bool = True
    active_days: List[int] = Field(default_factory=lambda: list(range(7)))
    is_active: bool = True
    restrictions: List[RestrictionInput] = Field(default_factory=list)
    cancellation_policy: Optional[CancellationPolicyInput] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        """名称去除首尾空白后不能为空"""
        v = v.strip()
        if not v:
            raise ValueError("名称不能为空")
        return v


class RatePlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    policy_type: Optional[PolicyType] = None
    includes_breakfast: Optional[bool] = None
    adjustment_type: Optional[AdjustmentType] = None
    adjustment_value: Optional[Decimal] = None
    base_rate_plan_id: Optional[int] = None
    priority: Optional[int] = Field(None, ge=1, le=999)
    allow_concurrent_rates: Optional[bool] = None
    active_days: Optional[List[int]] = None
    is_active: Optional[bool] = None
    restrictions: Optional[List[RestrictionInput]] = None
    cancellation_policy: Optional[CancellationPolicyInput] = None


class RatePlanResponse(BaseModel):
    id: int
    property_id: int
    name: str
    description: Optional[str] = None
    policy_type: Optional[PolicyType] = None
    includes_breakfast: bool
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    base_rate_plan_id: Optional[int] = None
    priority: int
    allow_concurrent_rates: bool
    active_days: List[int]
    is_active: bool
    restrictions: List[RestrictionResponse] = Field(default_factory=list)
    cancellation_policy: Optional[CancellationPolicyResponse] = None
    reservation_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class RatePlanDeleteResponse(BaseModel):
    outcome: str
    message: str
    details: Dict[str, Any]


class AdjustmentTypeInfo(BaseModel):
    value: AdjustmentType
    label: str
    description: str
    requires_base_rate_plan: bool


# ============== 搜索 Schemas ==============

class SearchCriteriaResponse(BaseModel):
    property_id: int
    check_in_date: date
    check_out_date: date
    num_guests: int
    nights: int


class RatePlanSummary(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    policy_type: Optional[str] = None
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    priority: int
    allow_concurrent_rates: bool


class NightlyRateResponse(BaseModel):
    date: date
    amount: Decimal
    is_override: bool = False


class SavingsResponse(BaseModel):
    amount: Decimal
    percentage: Decimal
    compared_to: str


class AvailableRate(BaseModel):
    rate_plan: RatePlanSummary
    total_price: Decimal
    nightly_rates: List[NightlyRateResponse]
    average_nightly_rate: Decimal
    cancellation_policy: Optional[CancellationPolicyResponse] = None
    includes_breakfast: bool = False
    savings: Optional[SavingsResponse] = None


class RateSearchResponse(BaseModel):
    search_criteria: SearchCriteriaResponse
    currency: str
    available_rates: List[AvailableRate] = Field(default_factory=list)
    message: Optional[str] = None


# ============== 退款 Schemas ==============

class RefundResponse(BaseModel):
    reservation_id: int
    total_price: Decimal
    days_until_check_in: int
    refund_amount: Decimal
    refund_percentage: Decimal
    description: str
    tier_days_before_check_in: Optional[int] = None


# ============== 每日价格 Schemas ==============

class PriceOverrideCreate(BaseModel):
    date: date
    amount: Decimal


class PriceOverrideUpdate(BaseModel):
    amount: Decimal


class PriceOverrideResponse(BaseModel):
    id: int
    rate_plan_id: int
    date: date
    amount: Decimal
    model_config = ConfigDict(from_attributes=True)


class BulkPriceUpdate(BaseModel):
    updates: List[PriceOverrideCreate] = Field(..., min_length=1)


class PriceItemError(BaseModel):
    date: date
    error: str


class BulkPriceResult(BaseModel):
    success: int
    skipped: int
    errors: List[PriceItemError] = Field(default_factory=list)
    prices: List[PriceOverrideResponse] = Field(default_factory=list)


class BulkDeleteResult(BaseModel):
    deleted_count: int


class PriceStats(BaseModel):
    count: int
    average_amount: Optional[Decimal] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    first_date: Optional[date] = None
    last_date: Optional[date] = None


class PriceGaps(BaseModel):
    start_date: date
    end_date: date
    gap_count: int
    dates: List[date] = Field(default_factory=list)


class CopyPricesRequest(BaseModel):
    source_start_date: date
    source_end_date: date
    target_start_date: date


class CopyPricesResult(BaseModel):
    copied_count: int
    errors: List[PriceItemError] = Field(default_factory=list)
