from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreUnavailable

# 视为“存储不可达”的底层异常：驱动层错误、连接池取连接超时、网络错误
_UNAVAILABLE_ERRORS = (DBAPIError, PoolTimeoutError, OSError, TimeoutError)


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    写操作事务：
    - 正常退出 => commit（提交后变更通知才会发出）
    - 任意异常 => rollback 后原样抛出
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


@asynccontextmanager
async def store_errors(operation: Optional[str] = None) -> AsyncIterator[None]:
    """
    把存储层面的失败统一翻译成 StoreUnavailable：
    - IntegrityError 是约束冲突，不是存储不可达，原样抛给仓库自己分类
    - 其余异常不动
    """
    try:
        yield
    except IntegrityError:
        raise
    except _UNAVAILABLE_ERRORS as e:
        raise StoreUnavailable(operation=operation, message=f"store unavailable during {operation}: {e}") from e
