# app/storage/profile/SQLAlchemyProfileRepository.py

from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.profile import Profile
from app.schemas.profile import ProfileOut, BatchProfilesOut
from app.schemas.media import CreatorOut
from app.storage.profile.profile_interface import IProfileRepository
from app.core.db import store_errors


class SQLAlchemyProfileRepository(IProfileRepository):
    """
    使用 SQLAlchemy 实现的主页仓库
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_profile(self, profile_id: str) -> Optional[ProfileOut]:
        async with store_errors("profiles.get"), self.session_factory() as session:
            profile = await session.get(Profile, profile_id)
            return ProfileOut.model_validate(profile) if profile else None

    async def list_recent(self, limit: int) -> BatchProfilesOut:
        async with store_errors("profiles.list_recent"), self.session_factory() as session:
            rows = (
                await session.execute(
                    select(Profile).order_by(Profile.created_at.desc()).limit(limit)
                )
            ).scalars().all()
            items = [ProfileOut.model_validate(p) for p in rows]
            return BatchProfilesOut(count=len(items), items=items)

    async def get_creators(self, profile_ids: Iterable[str]) -> Dict[str, CreatorOut]:
        ids = set(profile_ids)
        if not ids:
            return {}
        async with store_errors("profiles.get_creators"), self.session_factory() as session:
            rows = (await session.execute(select(Profile).where(Profile.id.in_(ids)))).scalars().all()
            return {p.id: CreatorOut.model_validate(p) for p in rows}
