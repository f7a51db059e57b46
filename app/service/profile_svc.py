import asyncio
from typing import Callable, Dict, Optional

from app.schemas.profile import ProfileOut, BatchProfilesOut, ProfileInteractionsOut
from app.schemas.interaction import CommentOut
from app.storage.profile.profile_interface import IProfileRepository
from app.storage.relation.relation_interface import IRelationRepository
from app.storage.comment.comment_interface import ICommentRepository
from app.storage.feed.feed_interface import IChangeFeed
from app.service.interaction_controller import ToggleController
from app.service.comment_controller import CommentFeedController

from app.core.config import settings
from app.core.exceptions import ProfileNotFound
from app.core.logx import logger


# ----------------------------- 查询 -----------------------------

async def list_recent_profiles(
    profile_repo: IProfileRepository,
    limit: int = settings.RECENT_PROFILES_LIMIT,
    to_dict: bool = True,
) -> Dict | BatchProfilesOut:
    """
    首页展示的最新主页（按注册时间倒序）
    """
    result = await profile_repo.list_recent(limit=limit)
    return result.model_dump() if to_dict else result


async def get_profile(profile_repo: IProfileRepository, profile_id: str, to_dict: bool = True) -> Dict | ProfileOut:
    profile = await profile_repo.get_profile(profile_id)
    if not profile:
        raise ProfileNotFound(profile_id=profile_id)
    return profile.model_dump() if to_dict else profile


# ----------------------------- 主页卡片交互 -----------------------------

class ProfileInteractions:
    """
    一个主页卡片上的全部社交交互：点赞、关注、评论
    - 三个控制器各自订阅自己表上的变更
    - 生命周期跟随宿主：mount() / close()，或 `async with`
    """

    def __init__(
        self,
        profile_id: str,
        viewer_id: Optional[str],
        like_repo: IRelationRepository,
        follow_repo: IRelationRepository,
        comment_repo: ICommentRepository,
        feed: IChangeFeed,
        comment_limit: int = settings.COMMENT_LIST_LIMIT,
    ):
        self.profile_id = profile_id
        self.viewer_id = viewer_id
        self.likes = ToggleController(like_repo, feed, profile_id, viewer_id)
        self.follows = ToggleController(follow_repo, feed, profile_id, viewer_id)
        self.comments = CommentFeedController(comment_repo, feed, profile_id, viewer_id, limit=comment_limit)

    def snapshot(self) -> ProfileInteractionsOut:
        return ProfileInteractionsOut(
            profile_id=self.profile_id,
            likes=self.likes.state,
            follows=self.follows.state,
            comments=self.comments.state,
        )

    def add_listener(self, listener: Callable[[ProfileInteractionsOut], None]) -> Callable[[], None]:
        """任意一个控制器状态变化时，把整张卡片的快照交给 listener"""
        removers = [
            controller.add_listener(lambda _state: listener(self.snapshot()))
            for controller in (self.likes, self.follows, self.comments)
        ]

        def remove() -> None:
            for r in removers:
                r()

        return remove

    async def mount(self) -> None:
        await asyncio.gather(self.likes.mount(), self.follows.mount(), self.comments.mount())
        logger.debug(f"profile card {self.profile_id} mounted for viewer {self.viewer_id}")

    def close(self) -> None:
        self.likes.close()
        self.follows.close()
        self.comments.close()

    async def __aenter__(self) -> "ProfileInteractions":
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

    async def add_comment(self, text: str) -> Optional[CommentOut]:
        return await self.comments.append(text)
