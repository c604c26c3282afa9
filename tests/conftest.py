"""
Pytest 配置和共享 fixtures
"""
import os

# 应用模块导入前切换到内存数据库，避免生命周期中创建文件数据库
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.database import Base, get_db
from app.models import ontology  # noqa
from app.models.ontology import User, Property
from app.security.auth import create_access_token
from app.main import app


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============== 认证相关 Fixtures ==============

@pytest.fixture
def owner(db_session):
    """创建房源所有者"""
    user = User(email="owner@example.com", name="房东", is_active=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session):
    """创建另一个用户"""
    user = User(email="other@example.com", name="其他房东", is_active=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def owner_token(owner):
    """房源所有者 token"""
    return create_access_token(owner.id)


@pytest.fixture
def auth_headers(owner_token):
    """返回带认证的请求头"""
    return {"Authorization": f"Bearer {owner_token}"}


@pytest.fixture
def other_auth_headers(other_user):
    """返回另一个用户的认证请求头"""
    return {"Authorization": f"Bearer {create_access_token(other_user.id)}"}


# ============== 实体相关 Fixtures ==============

@pytest.fixture
def sample_property(db_session, owner):
    """创建测试房源"""
    prop = Property(owner_id=owner.id, name="海景别墅")
    db_session.add(prop)
    db_session.commit()
    db_session.refresh(prop)
    return prop
