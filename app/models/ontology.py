"""
本体对象定义 (Ontology Objects)
房源、价格计划、限制条件、取消政策、每日价格覆盖与预订的持久化模型
计价规则本身在 core.rates 中，这里只负责存储
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, JSON,
    ForeignKey, Text, Enum as SQLEnum, Boolean, Numeric, UniqueConstraint
)
from sqlalchemy.orm import relationship
from app.database import Base
from core.rates.models import AdjustmentType, RestrictionType


# ============== 枚举定义 ==============

class PropertyStatus(str, Enum):
    """房源状态枚举"""
    ACTIVE = "active"          # 上架
    INACTIVE = "inactive"      # 下架
    DRAFT = "draft"            # 草稿


class ReservationStatus(str, Enum):
    """预订状态枚举"""
    CONFIRMED = "confirmed"    # 已确认
    COMPLETED = "completed"    # 已完成
    CANCELLED = "cancelled"    # 已取消
    NO_SHOW = "no_show"        # 未到店


class PolicyType(str, Enum):
    """取消政策类型（面向客人的标签）"""
    FULLY_FLEXIBLE = "FullyFlexible"  # 灵活退改
    NON_REFUNDABLE = "NonRefundable"  # 不可退
    CUSTOM = "Custom"                 # 自定义


# ============== 本体对象 ==============

class User(Base):
    """
    用户对象 - 房源所有者
    通过 JWT 的 sub 解析
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(120), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # 链接
    properties = relationship("Property", back_populates="owner")


class Property(Base):
    """
    房源对象
    价格计划、不可用日期、预订都挂在房源下
    """
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(200), nullable=False)
    status = Column(SQLEnum(PropertyStatus), default=PropertyStatus.ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)

    # 链接
    owner = relationship("User", back_populates="properties")
    rate_plans = relationship("RatePlan", back_populates="property")
    unavailable_dates = relationship("PropertyUnavailableDate", back_populates="property",
                                     cascade="all, delete-orphan")


class PropertyUnavailableDate(Base):
    """房源不可用日期"""
    __tablename__ = "property_unavailable_dates"
    __table_args__ = (
        UniqueConstraint("property_id", "date", name="uq_property_unavailable_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    reason = Column(String(200))                         # 不可用原因

    # 链接
    property = relationship("Property", back_populates="unavailable_dates")


class RatePlan(Base):
    """
    价格计划对象
    FixedPrice 直接给出每晚价格；FixedDiscount / Percentage 在基准计划上调整
    """
    __tablename__ = "rate_plans"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)           # 计划名称
    description = Column(Text)                           # 描述
    policy_type = Column(SQLEnum(PolicyType), default=PolicyType.FULLY_FLEXIBLE)
    includes_breakfast = Column(Boolean, default=False)  # 是否含早
    adjustment_type = Column(SQLEnum(AdjustmentType), nullable=False)
    adjustment_value = Column(Numeric(10, 2), nullable=False)
    base_rate_plan_id = Column(Integer, ForeignKey("rate_plans.id"), nullable=True)
    priority = Column(Integer, default=100)              # 优先级(数字越小优先级越高)
    allow_concurrent_rates = Column(Boolean, default=True)  # False 表示排他
    active_days = Column(JSON, default=lambda: list(range(7)))  # 0=周日 ... 6=周六
    is_active = Column(Boolean, default=True)            # 是否启用
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 链接
    property = relationship("Property", back_populates="rate_plans")
    restrictions = relationship("RatePlanRestriction", back_populates="rate_plan",
                                cascade="all, delete-orphan", order_by="RatePlanRestriction.id")
    cancellation_policy = relationship("CancellationPolicy", back_populates="rate_plan",
                                       uselist=False, cascade="all, delete-orphan")
    prices = relationship("RatePlanPrice", back_populates="rate_plan",
                          cascade="all, delete-orphan", order_by="RatePlanPrice.date")
    reservations = relationship("Reservation", back_populates="rate_plan")


class RatePlanRestriction(Base):
    """价格计划限制条件"""
    __tablename__ = "rate_plan_restrictions"

    id = Column(Integer, primary_key=True, index=True)
    rate_plan_id = Column(Integer, ForeignKey("rate_plans.id"), nullable=False, index=True)
    type = Column(SQLEnum(RestrictionType), nullable=False)
    value = Column(Integer)                              # 数值型限制
    start_date = Column(Date)                            # 日期区间型限制
    end_date = Column(Date)

    # 链接
    rate_plan = relationship("RatePlan", back_populates="restrictions")


class CancellationPolicy(Base):
    """取消政策，与价格计划一对一"""
    __tablename__ = "cancellation_policies"

    id = Column(Integer, primary_key=True, index=True)
    rate_plan_id = Column(Integer, ForeignKey("rate_plans.id"), nullable=False, unique=True)

    # 链接
    rate_plan = relationship("RatePlan", back_populates="cancellation_policy")
    tiers = relationship("CancellationPolicyTier", back_populates="policy",
                         cascade="all, delete-orphan",
                         order_by="CancellationPolicyTier.days_before_check_in")


class CancellationPolicyTier(Base):
    """取消政策阶梯"""
    __tablename__ = "cancellation_policy_tiers"
    __table_args__ = (
        UniqueConstraint("policy_id", "days_before_check_in", name="uq_policy_tier_days"),
    )

    id = Column(Integer, primary_key=True, index=True)
    policy_id = Column(Integer, ForeignKey("cancellation_policies.id"), nullable=False)
    days_before_check_in = Column(Integer, nullable=False)  # 距入住天数
    refund_percentage = Column(Numeric(5, 2), nullable=False)  # 退款比例
    description = Column(String(500))

    # 链接
    policy = relationship("CancellationPolicy", back_populates="tiers")


class RatePlanPrice(Base):
    """每日价格覆盖，优先于计算价格"""
    __tablename__ = "rate_plan_prices"
    __table_args__ = (
        UniqueConstraint("rate_plan_id", "date", name="uq_rate_plan_price_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    rate_plan_id = Column(Integer, ForeignKey("rate_plans.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 链接
    rate_plan = relationship("RatePlan", back_populates="prices")


class Reservation(Base):
    """
    预订对象
    只保留计价与退款需要的字段
    """
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    rate_plan_id = Column(Integer, ForeignKey("rate_plans.id"), nullable=True, index=True)
    guest_name = Column(String(100), nullable=False)
    check_in_date = Column(Date, nullable=False)         # 入住日期
    check_out_date = Column(Date, nullable=False)        # 离店日期
    num_guests = Column(Integer, default=1)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(SQLEnum(ReservationStatus), default=ReservationStatus.CONFIRMED)
    created_at = Column(DateTime, default=datetime.utcnow)

    # 链接
    property = relationship("Property")
    rate_plan = relationship("RatePlan", back_populates="reservations")
