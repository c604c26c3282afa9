"""
服务层异常
路由层统一转换：ValueError -> 400，NotFoundError -> 404，ConflictError -> 409
"""
from typing import Any, Dict, Optional


class NotFoundError(ValueError):
    """资源不存在或不属于当前用户"""


class ConflictError(ValueError):
    """操作与现有数据冲突，outcome 与 details 随响应返回"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 outcome: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.outcome = outcome
