"""
StayRate 主应用入口
度假租赁价格计划解析与计价服务
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.database import init_db
from app.routers import rate_plans, prices, reservations


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    # 初始化数据库
    init_db()
    print(f"✓ {settings.APP_NAME} 数据库已初始化")

    yield

    # 关闭时执行（如果需要清理资源）
    pass


# 创建应用
app = FastAPI(
    title="StayRate - 价格计划计价服务",
    description="价格计划解析、每晚计价、取消退款与价格计划生命周期管理",
    version="1.0.0",
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 生产环境应限制具体域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(rate_plans.metadata_router)
app.include_router(rate_plans.router)
app.include_router(prices.router)
app.include_router(prices.price_router)
app.include_router(reservations.router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "description": "价格计划解析与计价服务"
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}
