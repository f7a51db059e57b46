# app/storage/media/SQLAlchemyMediaRepository.py

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.media import Media
from app.schemas.media import MediaOut, MediaQuery
from app.storage.media.media_interface import IMediaRepository
from app.core.db import store_errors


class SQLAlchemyMediaRepository(IMediaRepository):
    """
    使用 SQLAlchemy 实现的媒体仓库
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_media(self, media_id: str) -> Optional[MediaOut]:
        async with store_errors("media.get"), self.session_factory() as session:
            media = await session.get(Media, media_id)
            return MediaOut.model_validate(media) if media else None

    async def list_media(self, query: MediaQuery) -> List[MediaOut]:
        stmt = select(Media)
        if query.type is not None:
            stmt = stmt.where(Media.type == query.type.value)
        if query.category and query.category != "all":
            stmt = stmt.where(Media.category == query.category)
        stmt = stmt.order_by(Media.created_at.desc()).limit(query.limit)

        async with store_errors("media.list"), self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [MediaOut.model_validate(m) for m in rows]
