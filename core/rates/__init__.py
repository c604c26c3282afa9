"""
core/rates - 价格计划解析与计价引擎

纯函数引擎，不访问数据库，所有输入来自 RatePlanSnapshot：
- models: 快照模型（RatePlan, Restriction, CancellationPolicy）
- restrictions: 限制条件过滤
- priority: 优先级与排他性解析
- calculator: 每晚价格计算（递归基准价）
- chain: 基准价格计划链校验
- search: 搜索编排（过滤 → 解析 → 计价 → 排序 → 节省金额）
- refund: 取消退款计算
- deletion: 智能删除决策

使用方式:
    >>> from core.rates import RatePlanSnapshot, RateSearchEngine, SearchCriteria
    >>> engine = RateSearchEngine(snapshot)
    >>> results = engine.search(criteria)
"""

# 快照模型
from core.rates.models import (
    ALL_DAYS,
    DEFAULT_MAX_CHAIN_DEPTH,
    AdjustmentType,
    RestrictionType,
    Restriction,
    CancellationTier,
    CancellationPolicy,
    RatePlan,
    RatePlanSnapshot,
)

# 异常
from core.rates.errors import (
    RateEngineError,
    RateResolutionError,
    MissingBaseRatePlanError,
    RateChainCycleError,
    RateChainDepthError,
    InvalidBaseChainError,
)

# 过滤与优先级
from core.rates.restrictions import StayContext, filter_applicable, is_plan_applicable
from core.rates.priority import resolve_visible, winning_exclusive

# 计价
from core.rates.calculator import NightlyRate, StayPrice, NightlyRateCalculator, quantize_money
from core.rates.chain import ChainLink, validate_base_chain
from core.rates.search import SearchCriteria, Savings, RateSearchResult, RateSearchEngine

# 退款与删除
from core.rates.refund import RefundQuote, calculate_refund, select_tier
from core.rates.deletion import (
    HardDelete,
    SoftDelete,
    DeletionBlocked,
    DeletionOutcome,
    decide_deletion,
)

__all__ = [
    "ALL_DAYS",
    "DEFAULT_MAX_CHAIN_DEPTH",
    "AdjustmentType",
    "RestrictionType",
    "Restriction",
    "CancellationTier",
    "CancellationPolicy",
    "RatePlan",
    "RatePlanSnapshot",
    "RateEngineError",
    "RateResolutionError",
    "MissingBaseRatePlanError",
    "RateChainCycleError",
    "RateChainDepthError",
    "InvalidBaseChainError",
    "StayContext",
    "filter_applicable",
    "is_plan_applicable",
    "resolve_visible",
    "winning_exclusive",
    "NightlyRate",
    "StayPrice",
    "NightlyRateCalculator",
    "quantize_money",
    "ChainLink",
    "validate_base_chain",
    "SearchCriteria",
    "Savings",
    "RateSearchResult",
    "RateSearchEngine",
    "RefundQuote",
    "calculate_refund",
    "select_tier",
    "HardDelete",
    "SoftDelete",
    "DeletionBlocked",
    "DeletionOutcome",
    "decide_deletion",
]
