import asyncio
from typing import Optional
from uuid import uuid4

from app.schemas.change import RowFilter
from app.schemas.interaction import CommentFeedState, CommentOut
from app.storage.comment.comment_interface import ICommentRepository
from app.storage.feed.feed_interface import IChangeFeed
from app.service.interaction_controller import BaseInteractionController, ControllerPhase

from app.core.config import settings
from app.core.exceptions import InteractionError
from app.core.logx import logger
from app.core.time import now_utc


class CommentFeedController(BaseInteractionController):
    """
    主页评论流控制器：

    追加评论：
    1. 本地构造占位评论（临时 id、当前用户、本地时间）插到最前面，总数 +1
    2. 调用仓库 append
    3. 成功：原地替换为服务端的 id / 时间，位置不变（不按服务端时间重新排序，避免列表跳动）
    4. 失败：移除占位评论，总数 -1
    """

    def __init__(
        self,
        repo: ICommentRepository,
        feed: IChangeFeed,
        subject_id: str,
        user_id: Optional[str],
        limit: int = settings.COMMENT_LIST_LIMIT,
    ):
        self.repo = repo
        self.limit = limit
        super().__init__(
            feed=feed,
            table=repo.table_name,
            row_filter=RowFilter(column=repo.subject_column, value=subject_id),
            subject_id=subject_id,
            user_id=user_id,
        )

    def _default_state(self) -> CommentFeedState:
        return CommentFeedState()

    async def _fetch(self) -> CommentFeedState:
        items, total = await asyncio.gather(
            self.repo.list_comments(self.subject_id, self.limit),
            self.repo.count(self.subject_id),
        )
        return CommentFeedState(items=items, total_count=total)

    async def append(self, text: str) -> Optional[CommentOut]:
        """
        追加一条评论，返回服务端确认后的评论；被忽略或失败时返回 None
        - 内容 trim 后为空直接忽略（不产生占位、不调用仓库）
        """
        if self.phase is not ControllerPhase.READY or self.user_id is None:
            return None
        content = (text or "").strip()
        if not content:
            return None

        placeholder = CommentOut(
            id=f"temp-{uuid4().hex}",
            user_id=self.user_id,
            subject_id=self.subject_id,
            content=content,
            created_at=now_utc(),
            pending=True,
        )
        current = self._state
        self._set_state(
            current.model_copy(update={"items": [placeholder, *current.items], "total_count": current.total_count + 1})
        )

        committed = None
        try:
            committed = await self.repo.append(self.user_id, self.subject_id, content)
        except InteractionError as e:
            if not self.closed:
                logger.warning(f"comment by {self.user_id} on {self.subject_id} failed, placeholder removed: {e}")
        except Exception:
            if not self.closed:
                logger.exception(f"comment by {self.user_id} on {self.subject_id} crashed, placeholder removed")
        finally:
            # 任何方式的失败（包括任务被取消）都要撤掉占位评论
            if committed is None and not self.closed:
                self._drop_placeholder(placeholder.id)

        if committed is None or self.closed:
            return committed

        self._confirm_placeholder(placeholder, committed)
        logger.info(f"User {self.user_id} commented on {self.subject_id}, id={committed.id}")
        return committed

    def _confirm_placeholder(self, placeholder: CommentOut, committed: CommentOut) -> None:
        current = self._state
        # 占位评论可能已被一次刷新整体覆盖，此时无需处理
        if not any(c.id == placeholder.id for c in current.items):
            return
        confirmed = placeholder.model_copy(
            update={"id": committed.id, "created_at": committed.created_at, "pending": False}
        )
        items = [confirmed if c.id == placeholder.id else c for c in current.items]
        self._set_state(current.model_copy(update={"items": items}))

    def _drop_placeholder(self, placeholder_id: str) -> None:
        current = self._state
        items = [c for c in current.items if c.id != placeholder_id]
        if len(items) == len(current.items):
            return
        self._set_state(
            current.model_copy(update={"items": items, "total_count": max(0, current.total_count - 1)})
        )
