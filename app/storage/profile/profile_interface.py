# app/storage/profile/profile_interface.py

from typing import Dict, Iterable, Optional, Protocol

from app.schemas.profile import ProfileOut, BatchProfilesOut
from app.schemas.media import CreatorOut


class IProfileRepository(Protocol):
    """
    主页仓库接口协议（只读）
    """

    async def get_profile(self, profile_id: str) -> Optional[ProfileOut]:
        ...

    async def list_recent(self, limit: int) -> BatchProfilesOut:
        """
        最新注册的主页（按 created_at 倒序）
        """
        ...

    async def get_creators(self, profile_ids: Iterable[str]) -> Dict[str, CreatorOut]:
        """
        批量取创作者展示信息：profile_id -> CreatorOut（不存在的不返回）
        """
        ...
