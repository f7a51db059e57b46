from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy import event
from sqlalchemy.orm import Session

from fastapi import Depends

from app.core.config import settings
from app.models.base import Base
from app.models.relation import RelationKind
from app.storage.feed.SQLAlchemyChangeFeed import SQLAlchemyChangeFeed
from app.storage.relation.SQLAlchemyRelationRepository import SQLAlchemyRelationRepository
from app.storage.comment.SQLAlchemyCommentRepository import SQLAlchemyCommentRepository
from app.storage.profile.SQLAlchemyProfileRepository import SQLAlchemyProfileRepository
from app.storage.media.SQLAlchemyMediaRepository import SQLAlchemyMediaRepository
from app.storage.user.SQLAlchemyUserRepository import SQLAlchemyUserRepository


class InteractionSession(Session):
    """本应用专用的会话类，变更中心只监听它产生的提交"""


def enable_sqlite_foreign_keys(bind: AsyncEngine) -> None:
    """SQLite 默认不检查外键，每个新连接上打开"""
    if bind.dialect.name != "sqlite":
        return

    @event.listens_for(bind.sync_engine, "connect")
    def _foreign_keys_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# SQLAlchemy 异步引擎（连接串见 app.core.config）
engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
enable_sqlite_foreign_keys(engine)
SessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    sync_session_class=InteractionSession,
)

# 进程内变更中心：所有经 SessionLocal 提交的写入都会通知订阅者
change_feed = SQLAlchemyChangeFeed(InteractionSession)


async def init_models(bind: AsyncEngine = engine) -> None:
    """建表（开发 / 测试用；生产环境由迁移负责）"""
    # 导入所有模型，保证它们注册到 Base.metadata
    from app.models import user, profile, media, like, follow, comment  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return SessionLocal

def get_change_feed() -> SQLAlchemyChangeFeed:
    return change_feed


# 未来可以根据配置切换不同的实现
def get_profile_like_repo(factory: async_sessionmaker = Depends(get_session_factory)) -> SQLAlchemyRelationRepository:
    return SQLAlchemyRelationRepository(factory, RelationKind.PROFILE_LIKE)
def get_profile_follow_repo(factory: async_sessionmaker = Depends(get_session_factory)) -> SQLAlchemyRelationRepository:
    return SQLAlchemyRelationRepository(factory, RelationKind.PROFILE_FOLLOW)
def get_media_like_repo(factory: async_sessionmaker = Depends(get_session_factory)) -> SQLAlchemyRelationRepository:
    return SQLAlchemyRelationRepository(factory, RelationKind.MEDIA_LIKE)
def get_creator_follow_repo(factory: async_sessionmaker = Depends(get_session_factory)) -> SQLAlchemyRelationRepository:
    return SQLAlchemyRelationRepository(factory, RelationKind.CREATOR_FOLLOW)
def get_comment_repo(factory: async_sessionmaker = Depends(get_session_factory)) -> SQLAlchemyCommentRepository:
    return SQLAlchemyCommentRepository(factory)
def get_profile_repo(factory: async_sessionmaker = Depends(get_session_factory)) -> SQLAlchemyProfileRepository:
    return SQLAlchemyProfileRepository(factory)
def get_media_repo(factory: async_sessionmaker = Depends(get_session_factory)) -> SQLAlchemyMediaRepository:
    return SQLAlchemyMediaRepository(factory)
def get_user_repo(factory: async_sessionmaker = Depends(get_session_factory)) -> SQLAlchemyUserRepository:
    return SQLAlchemyUserRepository(factory)
