# app/storage/media/media_interface.py

from typing import List, Optional, Protocol

from app.schemas.media import MediaOut, MediaQuery


class IMediaRepository(Protocol):
    """
    媒体仓库接口协议（只读）
    """

    async def get_media(self, media_id: str) -> Optional[MediaOut]:
        ...

    async def list_media(self, query: MediaQuery) -> List[MediaOut]:
        """
        媒体列表：
        - 按 type / category 过滤（category 为 "all" 时不过滤）
        - 按 created_at 倒序，最多 query.limit 条
        """
        ...
