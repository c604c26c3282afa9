"""
价格计划存储 - ORM 对象到引擎快照的转换
一次会话读取一个房源的全部价格计划，交给 core.rates 计算
"""
from typing import Dict, Iterable, List, Optional
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session, selectinload
from app.models.ontology import (
    RatePlan as RatePlanORM, CancellationPolicy as CancellationPolicyORM, RatePlanPrice
)
from core.rates.chain import ChainLink
from core.rates.models import (
    ALL_DAYS, AdjustmentType, CancellationPolicy, CancellationTier,
    RatePlan, RatePlanSnapshot, Restriction, RestrictionType
)


def to_cancellation_policy(policy: Optional[CancellationPolicyORM]) -> Optional[CancellationPolicy]:
    """ORM 取消政策 -> 引擎取消政策"""
    if policy is None:
        return None
    return CancellationPolicy(tiers=[
        CancellationTier(
            days_before_check_in=t.days_before_check_in,
            refund_percentage=Decimal(t.refund_percentage),
            description=t.description,
        )
        for t in policy.tiers
    ])


def to_engine_plan(plan: RatePlanORM, overrides: Optional[Dict[date, Decimal]] = None) -> RatePlan:
    """ORM 价格计划 -> 引擎价格计划"""
    active_days = plan.active_days if plan.active_days is not None else ALL_DAYS
    return RatePlan(
        id=plan.id,
        property_id=plan.property_id,
        name=plan.name,
        adjustment_type=AdjustmentType(plan.adjustment_type),
        adjustment_value=Decimal(plan.adjustment_value),
        base_rate_plan_id=plan.base_rate_plan_id,
        priority=plan.priority if plan.priority is not None else 100,
        allow_concurrent_rates=bool(plan.allow_concurrent_rates),
        active_days=frozenset(int(d) for d in active_days),
        is_active=bool(plan.is_active),
        includes_breakfast=bool(plan.includes_breakfast),
        description=plan.description,
        policy_type=plan.policy_type.value if plan.policy_type else None,
        restrictions=[
            Restriction(
                type=RestrictionType(r.type),
                value=r.value,
                start_date=r.start_date,
                end_date=r.end_date,
            )
            for r in plan.restrictions
        ],
        cancellation_policy=to_cancellation_policy(plan.cancellation_policy),
        price_overrides=dict(overrides or {}),
    )


class RatePlanStore:
    """按房源读取价格计划快照"""

    def __init__(self, db: Session):
        self.db = db

    def _query_plans(self, property_id: int) -> List[RatePlanORM]:
        return self.db.query(RatePlanORM).options(
            selectinload(RatePlanORM.restrictions),
            selectinload(RatePlanORM.cancellation_policy).selectinload(CancellationPolicyORM.tiers),
        ).filter(RatePlanORM.property_id == property_id).order_by(RatePlanORM.id).all()

    def _load_overrides(self, plan_ids: Iterable[int], start_date: Optional[date],
                        end_date: Optional[date]) -> Dict[int, Dict[date, Decimal]]:
        plan_ids = list(plan_ids)
        if not plan_ids:
            return {}
        query = self.db.query(RatePlanPrice).filter(RatePlanPrice.rate_plan_id.in_(plan_ids))
        if start_date:
            query = query.filter(RatePlanPrice.date >= start_date)
        if end_date:
            query = query.filter(RatePlanPrice.date < end_date)

        overrides: Dict[int, Dict[date, Decimal]] = {}
        for price in query.all():
            overrides.setdefault(price.rate_plan_id, {})[price.date] = Decimal(price.amount)
        return overrides

    def load_snapshot(self, property_id: int, start_date: Optional[date] = None,
                      end_date: Optional[date] = None) -> RatePlanSnapshot:
        """
        读取房源快照

        包含停用计划（派生计划仍可通过它们解析基准价），
        价格覆盖只加载 [start_date, end_date) 范围内的
        """
        plans = self._query_plans(property_id)
        overrides = self._load_overrides((p.id for p in plans), start_date, end_date)
        return RatePlanSnapshot.from_plans(
            property_id,
            (to_engine_plan(p, overrides.get(p.id)) for p in plans),
        )

    def load_chain_links(self, property_id: int) -> Dict[int, ChainLink]:
        """读取房源下所有计划的基准链信息"""
        rows = self.db.query(
            RatePlanORM.id, RatePlanORM.property_id,
            RatePlanORM.adjustment_type, RatePlanORM.base_rate_plan_id
        ).filter(RatePlanORM.property_id == property_id).all()
        return {
            row.id: ChainLink(
                id=row.id,
                property_id=row.property_id,
                adjustment_type=AdjustmentType(row.adjustment_type),
                base_rate_plan_id=row.base_rate_plan_id,
            )
            for row in rows
        }
