from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.relation import RelationKind


class EdgeOut(BaseModel):
    """
    一条已提交的点赞 / 关注记录：
    - user_id 为发起者，subject_id 为被点赞 / 被关注对象
    """
    id: str
    relation: RelationKind
    user_id: str
    subject_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentOut(BaseModel):
    """
    评论：
    - pending=True 表示本地占位评论（临时 id、本地时间），尚未被服务端确认
    """
    id: str
    user_id: str
    subject_id: str
    content: str
    created_at: datetime
    pending: bool = False

    model_config = ConfigDict(from_attributes=True)


class ToggleState(BaseModel):
    """
    某个 (subject, relation, 当前用户) 的本地交互状态：
    - is_active：当前用户是否已点赞 / 已关注
    - total_count：该对象上的总边数（允许在乐观更新期间短暂不准）
    - pending：是否有一次开关请求在途
    - error：初始加载 / 刷新失败时的可读错误
    """
    is_active: bool = False
    total_count: int = 0
    pending: bool = False
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class CommentFeedState(BaseModel):
    """
    评论流的本地状态：
    - items 按时间倒序（本地新增的占位评论始终插在最前面）
    """
    items: List[CommentOut] = []
    total_count: int = 0
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)
