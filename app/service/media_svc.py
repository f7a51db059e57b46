import asyncio
from typing import Callable, Dict, Optional

from app.schemas.media import (
    BatchMediaOut,
    CreatorOut,
    MediaInteractionsOut,
    MediaOut,
    MediaQuery,
    MediaWithStatsOut,
)
from app.storage.media.media_interface import IMediaRepository
from app.storage.profile.profile_interface import IProfileRepository
from app.storage.relation.relation_interface import IRelationRepository
from app.storage.feed.feed_interface import IChangeFeed
from app.service.interaction_controller import ToggleController

from app.core.exceptions import MediaNotFound
from app.core.logx import logger


# ----------------------------- 媒体列表 -----------------------------

async def list_media(
    media_repo: IMediaRepository,
    profile_repo: IProfileRepository,
    like_repo: IRelationRepository,
    follow_repo: IRelationRepository,
    query: MediaQuery,
    viewer_id: Optional[str] = None,
    to_dict: bool = True,
) -> Dict | BatchMediaOut:
    """
    媒体列表（附带统计）：

    1. 按 type / category 取最新的 limit 条媒体
    2. 批量取创作者展示信息
    3. 每条媒体并发取：点赞数、创作者粉丝数、当前用户是否点赞 / 是否关注创作者
       （未登录时两个布尔值恒为 False）
    """
    items = await media_repo.list_media(query)
    creators = await profile_repo.get_creators(m.creator_id for m in items)

    enriched = await asyncio.gather(
        *(
            _with_stats(m, creators.get(m.creator_id), like_repo, follow_repo, viewer_id)
            for m in items
        )
    )
    result = BatchMediaOut(count=len(enriched), items=list(enriched))
    logger.debug(f"listed {result.count} media (type={query.type}, category={query.category})")
    return result.model_dump() if to_dict else result


async def _with_stats(
    media: MediaOut,
    creator: Optional[CreatorOut],
    like_repo: IRelationRepository,
    follow_repo: IRelationRepository,
    viewer_id: Optional[str],
) -> MediaWithStatsOut:
    likes_count, follows_count = await asyncio.gather(
        like_repo.count(media.id),
        follow_repo.count(media.creator_id),
    )
    is_liked = is_followed = False
    if viewer_id is not None:
        is_liked, is_followed = await asyncio.gather(
            like_repo.exists(viewer_id, media.id),
            follow_repo.exists(viewer_id, media.creator_id),
        )
    return MediaWithStatsOut(
        **media.model_dump(),
        creator=creator,
        likes_count=likes_count,
        is_liked_by_user=is_liked,
        follows_count=follows_count,
        is_followed_by_user=is_followed,
    )


async def get_media(media_repo: IMediaRepository, media_id: str, to_dict: bool = True) -> Dict | MediaOut:
    media = await media_repo.get_media(media_id)
    if not media:
        raise MediaNotFound(media_id=media_id)
    return media.model_dump() if to_dict else media


# ----------------------------- 媒体卡片交互 -----------------------------

class MediaInteractions:
    """
    一个媒体卡片上的交互：点赞媒体、关注创作者
    - 点赞按 media_id 订阅 media_likes，关注按 creator_id 订阅 creator_follows
    """

    def __init__(
        self,
        media: MediaOut,
        viewer_id: Optional[str],
        like_repo: IRelationRepository,
        follow_repo: IRelationRepository,
        feed: IChangeFeed,
    ):
        self.media_id = media.id
        self.creator_id = media.creator_id
        self.viewer_id = viewer_id
        self.likes = ToggleController(like_repo, feed, media.id, viewer_id)
        self.follows = ToggleController(follow_repo, feed, media.creator_id, viewer_id)

    def snapshot(self) -> MediaInteractionsOut:
        return MediaInteractionsOut(
            media_id=self.media_id,
            creator_id=self.creator_id,
            likes=self.likes.state,
            follows=self.follows.state,
        )

    def add_listener(self, listener: Callable[[MediaInteractionsOut], None]) -> Callable[[], None]:
        removers = [
            controller.add_listener(lambda _state: listener(self.snapshot()))
            for controller in (self.likes, self.follows)
        ]

        def remove() -> None:
            for r in removers:
                r()

        return remove

    async def mount(self) -> None:
        await asyncio.gather(self.likes.mount(), self.follows.mount())

    def close(self) -> None:
        self.likes.close()
        self.follows.close()

    async def __aenter__(self) -> "MediaInteractions":
        try:
            await self.mount()
        except BaseException:
            self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def toggle_like(self) -> bool:
        return await self.likes.toggle()

    async def toggle_follow(self) -> bool:
        return await self.follows.toggle()
