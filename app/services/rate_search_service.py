"""
价格搜索服务 - 客人侧计价入口
校验请求 → 可用性检查 → 读取快照 → core.rates 搜索 → 组装响应
"""
import logging
from typing import List, Optional, Union
from datetime import date, datetime
from sqlalchemy.orm import Session
from app.config import settings
from app.models.schemas import (
    AvailableRate, CancellationPolicyResponse, CancellationTierResponse,
    NightlyRateResponse, RatePlanSummary, RateSearchResponse,
    SavingsResponse, SearchCriteriaResponse
)
from app.services.property_service import PropertyService
from app.services.rate_plan_store import RatePlanStore
from core.rates.dates import to_date
from core.rates.models import CancellationPolicy
from core.rates.search import RateSearchEngine, RateSearchResult, SearchCriteria

logger = logging.getLogger(__name__)

NO_RATES_MESSAGE = "No rates available"


class RateSearchService:
    """价格搜索服务"""

    def __init__(self, db: Session):
        self.db = db
        self.properties = PropertyService(db)
        self.store = RatePlanStore(db)

    def validate(self, check_in_date: date, check_out_date: date, num_guests: int,
                 today: Optional[date] = None) -> None:
        """校验搜索参数"""
        today = today or date.today()
        if check_in_date >= check_out_date:
            raise ValueError("离店日期必须晚于入住日期")
        if check_in_date < today:
            raise ValueError("入住日期不能早于今天")
        if num_guests < 1 or num_guests > settings.MAX_GUESTS:
            raise ValueError(f"入住人数必须在 1 到 {settings.MAX_GUESTS} 之间")
        if (check_out_date - check_in_date).days > settings.MAX_STAY_NIGHTS:
            raise ValueError(f"入住晚数不能超过 {settings.MAX_STAY_NIGHTS}")

    def search(self, property_id: int, check_in_date: date, check_out_date: date,
               num_guests: int,
               booking_date: Optional[Union[date, datetime]] = None) -> RateSearchResponse:
        """搜索房源在指定入住期间可用的价格计划"""
        self.validate(check_in_date, check_out_date, num_guests)
        self.properties.require_property(property_id)

        criteria_response = SearchCriteriaResponse(
            property_id=property_id,
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            num_guests=num_guests,
            nights=(check_out_date - check_in_date).days,
        )

        unavailable = self.properties.get_unavailable_dates(property_id, check_in_date, check_out_date)
        if unavailable:
            logger.info(f"Property {property_id} unavailable on {len(unavailable)} night(s), no rates offered")
            return RateSearchResponse(
                search_criteria=criteria_response,
                currency=settings.CURRENCY,
                available_rates=[],
                message=NO_RATES_MESSAGE,
            )

        snapshot = self.store.load_snapshot(property_id, check_in_date, check_out_date)
        engine = RateSearchEngine(snapshot, max_chain_depth=settings.RATE_CHAIN_MAX_DEPTH)
        results = engine.search(SearchCriteria(
            property_id=property_id,
            check_in=check_in_date,
            check_out=check_out_date,
            num_guests=num_guests,
            booking_date=booking_date or datetime.now(),
        ))

        available_rates = [self._to_available_rate(r) for r in results]
        return RateSearchResponse(
            search_criteria=criteria_response,
            currency=settings.CURRENCY,
            available_rates=available_rates,
            message=None if available_rates else NO_RATES_MESSAGE,
        )

    def _to_available_rate(self, result: RateSearchResult) -> AvailableRate:
        plan = result.rate_plan
        return AvailableRate(
            rate_plan=RatePlanSummary(
                id=plan.id,
                name=plan.name,
                description=plan.description,
                policy_type=plan.policy_type,
                adjustment_type=plan.adjustment_type,
                adjustment_value=plan.adjustment_value,
                priority=plan.priority,
                allow_concurrent_rates=plan.allow_concurrent_rates,
            ),
            total_price=result.total_price,
            nightly_rates=[
                NightlyRateResponse(date=to_date(n.date), amount=n.amount, is_override=n.is_override)
                for n in result.price.nightly_rates
            ],
            average_nightly_rate=result.average_nightly_rate,
            cancellation_policy=_policy_response(plan.cancellation_policy),
            includes_breakfast=plan.includes_breakfast,
            savings=SavingsResponse(
                amount=result.savings.amount,
                percentage=result.savings.percentage,
                compared_to=result.savings.compared_to,
            ) if result.savings else None,
        )


def _policy_response(policy: Optional[CancellationPolicy]) -> Optional[CancellationPolicyResponse]:
    if policy is None:
        return None
    tiers: List[CancellationTierResponse] = [
        CancellationTierResponse(
            days_before_check_in=t.days_before_check_in,
            refund_percentage=t.refund_percentage,
            description=t.description,
        )
        for t in policy.sorted_tiers()
    ]
    return CancellationPolicyResponse(tiers=tiers)
