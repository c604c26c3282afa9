"""
价格计划服务 - 本体操作层
管理 RatePlan 的创建、更新、限制条件与智能删除
所有写操作限定在当前用户拥有的房源内，并锁定受影响的价格计划行
"""
import logging
from typing import Dict, List, Optional, Tuple
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.config import settings
from app.models.ontology import (
    RatePlan, RatePlanRestriction, CancellationPolicy, CancellationPolicyTier, Reservation
)
from app.models.schemas import (
    RatePlanCreate, RatePlanUpdate, RestrictionInput, CancellationPolicyInput
)
from app.services.exceptions import NotFoundError, ConflictError
from app.services.property_service import PropertyService
from app.services.rate_plan_store import RatePlanStore
from core.rates.chain import ChainLink, validate_base_chain
from core.rates.deletion import DeletionBlocked, DeletionOutcome, decide_deletion
from core.rates.models import AdjustmentType, RestrictionType

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

ADJUSTMENT_TYPES = [
    {
        "value": AdjustmentType.FIXED_PRICE,
        "label": "固定价格",
        "description": "每晚使用固定价格",
        "requires_base_rate_plan": False,
    },
    {
        "value": AdjustmentType.FIXED_DISCOUNT,
        "label": "固定减价",
        "description": "在基准价格计划的每晚价格上减去固定金额",
        "requires_base_rate_plan": True,
    },
    {
        "value": AdjustmentType.PERCENTAGE,
        "label": "百分比调整",
        "description": "在固定价格基准计划上按百分比折扣（负数为加价）",
        "requires_base_rate_plan": True,
    },
]


class RatePlanService:
    """价格计划服务"""

    def __init__(self, db: Session):
        self.db = db
        self.properties = PropertyService(db)
        self.store = RatePlanStore(db)

    # ============== 查询 ==============

    def get_adjustment_types(self) -> List[dict]:
        """调整类型元数据"""
        return [dict(item) for item in ADJUSTMENT_TYPES]

    def get_rate_plans(self, user_id: int, property_id: int) -> List[Tuple[RatePlan, int]]:
        """获取房源的价格计划列表及各自的预订数"""
        self.properties.require_owned_property(user_id, property_id)
        plans = self.db.query(RatePlan).filter(
            RatePlan.property_id == property_id
        ).order_by(RatePlan.priority, RatePlan.id).all()

        counts = dict(self.db.query(Reservation.rate_plan_id, func.count(Reservation.id)).filter(
            Reservation.rate_plan_id.in_([p.id for p in plans])
        ).group_by(Reservation.rate_plan_id).all()) if plans else {}

        return [(p, counts.get(p.id, 0)) for p in plans]

    def get_rate_plan(self, user_id: int, property_id: int, rate_plan_id: int) -> RatePlan:
        """获取单个价格计划"""
        self.properties.require_owned_property(user_id, property_id)
        return self._require_plan(property_id, rate_plan_id)

    def count_reservations(self, rate_plan_id: int) -> int:
        """引用该价格计划的预订数（任意状态）"""
        return self.db.query(func.count(Reservation.id)).filter(
            Reservation.rate_plan_id == rate_plan_id
        ).scalar() or 0

    # ============== 写操作 ==============

    def create_rate_plan(self, user_id: int, property_id: int, data: RatePlanCreate) -> RatePlan:
        """创建价格计划"""
        self.properties.require_owned_property(user_id, property_id)

        self._validate_fields(data.adjustment_type, data.adjustment_value, data.priority)
        active_days = self._normalize_active_days(data.active_days)
        self._validate_restrictions(data.restrictions)
        if data.cancellation_policy is not None:
            self._validate_policy(data.cancellation_policy)

        if data.base_rate_plan_id is not None:
            self._lock_base(property_id, data.base_rate_plan_id)
        links = self.store.load_chain_links(property_id)
        validate_base_chain(
            links, property_id, data.adjustment_type, data.base_rate_plan_id,
            max_depth=settings.RATE_CHAIN_MAX_DEPTH,
        )

        rate_plan = RatePlan(
            property_id=property_id,
            name=data.name,
            description=data.description,
            policy_type=data.policy_type,
            includes_breakfast=data.includes_breakfast,
            adjustment_type=data.adjustment_type,
            adjustment_value=data.adjustment_value,
            base_rate_plan_id=data.base_rate_plan_id,
            priority=data.priority,
            allow_concurrent_rates=data.allow_concurrent_rates,
            active_days=active_days,
            is_active=data.is_active,
        )
        rate_plan.restrictions = self._build_restrictions(data.restrictions)
        if data.cancellation_policy is not None:
            rate_plan.cancellation_policy = self._build_policy(data.cancellation_policy)

        self.db.add(rate_plan)
        self.db.commit()
        self.db.refresh(rate_plan)
        logger.info(f"Rate plan {rate_plan.id} created for property {property_id} by user {user_id}")
        return rate_plan

    def update_rate_plan(self, user_id: int, property_id: int, rate_plan_id: int,
                         data: RatePlanUpdate) -> RatePlan:
        """更新价格计划"""
        self.properties.require_owned_property(user_id, property_id)
        rate_plan = self._lock_plan(property_id, rate_plan_id)

        update_data = data.model_dump(exclude_unset=True)
        restrictions = update_data.pop("restrictions", None)
        replace_policy = "cancellation_policy" in update_data
        update_data.pop("cancellation_policy", None)

        adjustment_type = AdjustmentType(update_data.get("adjustment_type", rate_plan.adjustment_type))
        adjustment_value = update_data.get("adjustment_value", rate_plan.adjustment_value)
        priority = update_data.get("priority", rate_plan.priority)
        if adjustment_type is AdjustmentType.FIXED_PRICE and "base_rate_plan_id" not in update_data:
            update_data["base_rate_plan_id"] = None
        base_rate_plan_id = update_data.get("base_rate_plan_id", rate_plan.base_rate_plan_id)

        if "name" in update_data and (update_data["name"] is None or not update_data["name"].strip()):
            raise ValueError("名称不能为空")
        if update_data.get("name"):
            update_data["name"] = update_data["name"].strip()
        if adjustment_value is None:
            raise ValueError("调整值不能为空")
        for key in ("adjustment_type", "priority", "allow_concurrent_rates",
                    "includes_breakfast", "is_active", "active_days"):
            if key in update_data and update_data[key] is None:
                raise ValueError(f"{key} 不能为空")
        self._validate_fields(adjustment_type, Decimal(adjustment_value), priority)
        if "active_days" in update_data:
            update_data["active_days"] = self._normalize_active_days(update_data["active_days"])
        if data.restrictions is not None:
            self._validate_restrictions(data.restrictions)
        if data.cancellation_policy is not None:
            self._validate_policy(data.cancellation_policy)

        self._validate_chain_update(rate_plan, adjustment_type, base_rate_plan_id)

        for key, value in update_data.items():
            setattr(rate_plan, key, value)
        if restrictions is not None:
            rate_plan.restrictions = self._build_restrictions(data.restrictions)
        if replace_policy:
            # 先删除旧政策，rate_plan_id 上有唯一约束
            rate_plan.cancellation_policy = None
            self.db.flush()
            if data.cancellation_policy is not None:
                rate_plan.cancellation_policy = self._build_policy(data.cancellation_policy)

        self.db.commit()
        self.db.refresh(rate_plan)
        logger.info(f"Rate plan {rate_plan.id} updated by user {user_id}")
        return rate_plan

    def replace_restrictions(self, user_id: int, property_id: int, rate_plan_id: int,
                             restrictions: List[RestrictionInput]) -> RatePlan:
        """整体替换价格计划的限制条件"""
        self.properties.require_owned_property(user_id, property_id)
        rate_plan = self._lock_plan(property_id, rate_plan_id)
        self._validate_restrictions(restrictions)

        rate_plan.restrictions = self._build_restrictions(restrictions)
        self.db.commit()
        self.db.refresh(rate_plan)
        logger.info(f"Rate plan {rate_plan.id} restrictions replaced ({len(restrictions)} item(s))")
        return rate_plan

    def delete_rate_plan(self, user_id: int, property_id: int, rate_plan_id: int) -> DeletionOutcome:
        """
        智能删除价格计划

        1. 存在派生计划 -> 拒绝 (ConflictError)
        2. 没有任何预订 -> 物理删除
        3. 否则 -> 停用 (is_active = False)
        """
        self.properties.require_owned_property(user_id, property_id)
        rate_plan = self._lock_plan(property_id, rate_plan_id)

        derived = self.db.query(RatePlan).filter(
            RatePlan.base_rate_plan_id == rate_plan.id
        ).order_by(RatePlan.id).with_for_update().all()
        outcome = decide_deletion(self.count_reservations(rate_plan.id), [p.name for p in derived])

        if isinstance(outcome, DeletionBlocked):
            logger.info(f"Rate plan {rate_plan.id} deletion blocked by {len(derived)} derived plan(s)")
            raise ConflictError("无法删除价格计划：存在以其为基准的派生价格计划",
                                outcome.details(), outcome=outcome.kind)

        if outcome.kind == "hard":
            self.db.delete(rate_plan)
        else:
            rate_plan.is_active = False
        self.db.commit()
        logger.info(f"Rate plan {rate_plan_id} deleted ({outcome.kind}) by user {user_id}")
        return outcome

    # ============== 内部方法 ==============

    def _require_plan(self, property_id: int, rate_plan_id: int) -> RatePlan:
        rate_plan = self.db.query(RatePlan).filter(
            RatePlan.id == rate_plan_id,
            RatePlan.property_id == property_id
        ).first()
        if not rate_plan:
            raise NotFoundError("价格计划不存在")
        return rate_plan

    def _lock_plan(self, property_id: int, rate_plan_id: int) -> RatePlan:
        """SELECT ... FOR UPDATE 锁定价格计划行"""
        rate_plan = self.db.query(RatePlan).filter(
            RatePlan.id == rate_plan_id,
            RatePlan.property_id == property_id
        ).with_for_update().first()
        if not rate_plan:
            raise NotFoundError("价格计划不存在")
        return rate_plan

    def _lock_base(self, property_id: int, base_rate_plan_id: int) -> None:
        """锁定基准计划行；基准不存在时交给链校验报错"""
        self.db.query(RatePlan).filter(
            RatePlan.id == base_rate_plan_id,
            RatePlan.property_id == property_id
        ).with_for_update().first()

    def _validate_fields(self, adjustment_type: AdjustmentType, adjustment_value: Decimal,
                         priority: int) -> None:
        adjustment_type = AdjustmentType(adjustment_type)
        if adjustment_type is AdjustmentType.PERCENTAGE:
            if adjustment_value < -HUNDRED or adjustment_value > HUNDRED:
                raise ValueError("百分比调整值必须在 -100 到 100 之间")
        elif adjustment_value < 0:
            raise ValueError("调整值不能为负数")
        if priority < 1 or priority > 999:
            raise ValueError("优先级必须在 1 到 999 之间")

    def _normalize_active_days(self, active_days: List[int]) -> List[int]:
        for day in active_days:
            if day < 0 or day > 6:
                raise ValueError("可用星期必须在 0（周日）到 6（周六）之间")
        return sorted(set(active_days))

    def _validate_restrictions(self, restrictions: List[RestrictionInput]) -> None:
        for r in restrictions:
            restriction_type = RestrictionType(r.type)
            if restriction_type.is_date_range:
                if r.start_date and r.end_date and r.start_date > r.end_date:
                    raise ValueError(f"{restriction_type.value} 的开始日期不能晚于结束日期")
            elif r.value is not None and r.value < 0:
                raise ValueError(f"{restriction_type.value} 的值不能为负数")

    def _validate_policy(self, policy: CancellationPolicyInput) -> None:
        seen = set()
        for tier in policy.tiers:
            if tier.days_before_check_in < 0:
                raise ValueError("取消政策的天数不能为负数")
            if tier.refund_percentage < 0 or tier.refund_percentage > HUNDRED:
                raise ValueError("退款比例必须在 0 到 100 之间")
            if tier.days_before_check_in in seen:
                raise ValueError(f"取消政策中 {tier.days_before_check_in} 天的阶梯重复")
            seen.add(tier.days_before_check_in)

    def _validate_chain_update(self, rate_plan: RatePlan, adjustment_type: AdjustmentType,
                               base_rate_plan_id: Optional[int]) -> None:
        """校验本计划及所有以它为（间接）基准的计划在更新后仍可解析"""
        if base_rate_plan_id is not None and base_rate_plan_id != rate_plan.base_rate_plan_id:
            self._lock_base(rate_plan.property_id, base_rate_plan_id)

        links = self.store.load_chain_links(rate_plan.property_id)
        links[rate_plan.id] = ChainLink(
            id=rate_plan.id,
            property_id=rate_plan.property_id,
            adjustment_type=adjustment_type,
            base_rate_plan_id=base_rate_plan_id,
        )

        if adjustment_type is not AdjustmentType.FIXED_PRICE:
            percentage_dependents = [
                link for link in links.values()
                if link.base_rate_plan_id == rate_plan.id
                and link.adjustment_type is AdjustmentType.PERCENTAGE
            ]
            if percentage_dependents:
                raise ValueError("存在百分比派生计划，不能将调整类型改为非固定价格")

        validate_base_chain(
            links, rate_plan.property_id, adjustment_type, base_rate_plan_id,
            rate_plan_id=rate_plan.id, max_depth=settings.RATE_CHAIN_MAX_DEPTH,
        )
        for link in self._descendants(links, rate_plan.id):
            validate_base_chain(
                links, link.property_id, link.adjustment_type, link.base_rate_plan_id,
                rate_plan_id=link.id, max_depth=settings.RATE_CHAIN_MAX_DEPTH,
            )

    def _descendants(self, links: Dict[int, ChainLink], rate_plan_id: int) -> List[ChainLink]:
        children: Dict[int, List[ChainLink]] = {}
        for link in links.values():
            if link.base_rate_plan_id is not None:
                children.setdefault(link.base_rate_plan_id, []).append(link)

        result, stack, visited = [], [rate_plan_id], {rate_plan_id}
        while stack:
            for child in children.get(stack.pop(), []):
                if child.id not in visited:
                    visited.add(child.id)
                    result.append(child)
                    stack.append(child.id)
        return result

    def _build_restrictions(self, restrictions: List[RestrictionInput]) -> List[RatePlanRestriction]:
        return [
            RatePlanRestriction(
                type=RestrictionType(r.type),
                value=r.value,
                start_date=r.start_date,
                end_date=r.end_date,
            )
            for r in restrictions
        ]

    def _build_policy(self, policy: CancellationPolicyInput) -> CancellationPolicy:
        return CancellationPolicy(tiers=[
            CancellationPolicyTier(
                days_before_check_in=t.days_before_check_in,
                refund_percentage=t.refund_percentage,
                description=t.description,
            )
            for t in policy.tiers
        ])
