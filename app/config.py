"""
应用配置
从环境变量和 .env 读取配置
"""
from decimal import Decimal
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "StayRate"
    DEBUG: bool = False

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./stayrate.db"

    # JWT 配置
    SECRET_KEY: str = "stayrate-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # 搜索限制
    MAX_GUESTS: int = 20
    MAX_STAY_NIGHTS: int = 365

    # 基准价格计划链最大深度
    RATE_CHAIN_MAX_DEPTH: int = 10

    # 每日价格覆盖
    PRICE_MAX_AMOUNT: Decimal = Decimal("99999.99")
    PRICE_BULK_LIMIT: int = 365

    CURRENCY: str = "AED"

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
