# Business Services
from app.services.property_service import PropertyService
from app.services.rate_plan_store import RatePlanStore
from app.services.rate_plan_service import RatePlanService
from app.services.rate_search_service import RateSearchService
from app.services.refund_service import RefundService
from app.services.price_service import PriceService

__all__ = [
    'PropertyService', 'RatePlanStore', 'RatePlanService',
    'RateSearchService', 'RefundService', 'PriceService'
]
