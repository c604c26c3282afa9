"""
core - 计价框架层

独立于 Web 与持久化的纯业务引擎，包含：
- rates: 价格计划解析、每晚计价、取消退款、智能删除决策

使用方式:
    >>> from core.rates import RateSearchEngine, RatePlanSnapshot
    >>> from core.rates.refund import calculate_refund
"""

__version__ = "0.1.0"
