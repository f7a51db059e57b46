from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.user import User
from app.models.profile import Profile
from app.schemas.user import AccountOut, SignUp
from app.storage.user.user_interface import IUserRepository
from app.core.db import store_errors, transaction
from app.core.exceptions import EmailAlreadyRegistered


class SQLAlchemyUserRepository(IUserRepository):
    """
    使用 SQLAlchemy 实现的账号仓库
    业务层依赖 IUserRepository 接口，而不是这个具体实现
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_account(self, data: SignUp, password_hash: str) -> AccountOut:
        user = User(email=data.email.lower(), password_hash=password_hash)
        try:
            async with store_errors("users.create"), self.session_factory() as session:
                async with transaction(session):
                    session.add(user)
                    await session.flush()
                    session.add(
                        Profile(
                            id=user.id,
                            name=data.name,
                            username=data.username,
                            email=user.email,
                        )
                    )
                    await session.flush()
                    account = AccountOut.model_validate(user)
        except IntegrityError as e:
            raise EmailAlreadyRegistered(email=data.email) from e
        return account

    async def get_account_by_email(self, email: str) -> Optional[AccountOut]:
        async with store_errors("users.get_by_email"), self.session_factory() as session:
            user = (
                await session.execute(select(User).where(User.email == email.lower()).limit(1))
            ).scalar_one_or_none()
            return AccountOut.model_validate(user) if user else None

    async def get_account(self, user_id: str) -> Optional[AccountOut]:
        async with store_errors("users.get"), self.session_factory() as session:
            user = await session.get(User, user_id)
            return AccountOut.model_validate(user) if user else None
