from types import SimpleNamespace

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from app.models.base import Base
from app.routers import auth, profiles, media
from app.storage.database import get_change_feed, get_session_factory  # 同时注册全部模型
from app.storage.feed.SQLAlchemyChangeFeed import SQLAlchemyChangeFeed

from tests.fakes import FakeChangeFeed, FakeCommentRepository, FakeRelationRepository


# ----------------------------- 内存替身 -----------------------------

@pytest.fixture
def feed():
    return FakeChangeFeed()


@pytest.fixture
def like_repo(feed):
    return FakeRelationRepository(feed=feed)


@pytest.fixture
def comment_repo(feed):
    return FakeCommentRepository(feed=feed)


# ----------------------------- 真实数据库（aiosqlite 临时文件） -----------------------------

def make_session_class():
    # 每个测试一个独立的会话类，变更中心之间互不串扰
    class _TestSession(Session):
        pass

    return _TestSession


@pytest_asyncio.fixture
async def store(tmp_path):
    session_class = make_session_class()
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False, sync_session_class=session_class)
    change_feed = SQLAlchemyChangeFeed(session_class)

    yield SimpleNamespace(engine=engine, factory=factory, feed=change_feed)

    change_feed.close()
    await engine.dispose()


# ----------------------------- 接口层 -----------------------------

@pytest.fixture
def live_app(tmp_path):
    """
    挂好路由的测试应用：
    - 同步引擎负责建表 / 造数据
    - 应用本身走 aiosqlite + 独立的变更中心
    """
    path = tmp_path / "app.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)

    session_class = make_session_class()
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    factory = async_sessionmaker(engine, expire_on_commit=False, sync_session_class=session_class)
    change_feed = SQLAlchemyChangeFeed(session_class)

    test_app = FastAPI()
    test_app.include_router(auth.auth_router)
    test_app.include_router(profiles.profiles_router)
    test_app.include_router(media.media_router)
    test_app.dependency_overrides[get_session_factory] = lambda: factory
    test_app.dependency_overrides[get_change_feed] = lambda: change_feed

    with TestClient(test_app) as client:
        yield SimpleNamespace(
            client=client,
            db=sessionmaker(bind=sync_engine, expire_on_commit=False),
        )

    change_feed.close()
    sync_engine.dispose()
