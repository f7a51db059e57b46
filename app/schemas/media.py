from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings
from app.models.media import MediaType
from app.schemas.interaction import ToggleState


class CreatorOut(BaseModel):
    name: str
    username: str

    model_config = ConfigDict(from_attributes=True)


class MediaOut(BaseModel):
    """
    媒体基础信息
    """
    id: str
    creator_id: str
    title: str
    description: Optional[str] = None
    type: MediaType
    category: str
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    read_time: Optional[str] = None
    is_premium: bool = False
    price: Optional[Decimal] = None
    rating: Optional[Decimal] = None
    view_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MediaWithStatsOut(MediaOut):
    """
    媒体列表项（附带统计与当前用户视角）：
    - likes_count / is_liked_by_user：媒体点赞
    - follows_count / is_followed_by_user：创作者关注
    """
    creator: Optional[CreatorOut] = None
    likes_count: int = 0
    is_liked_by_user: bool = False
    follows_count: int = 0
    is_followed_by_user: bool = False


class BatchMediaOut(BaseModel):
    count: int
    items: List[MediaWithStatsOut]


class MediaQuery(BaseModel):
    """
    媒体列表查询条件：
    - category 为 None 或 "all" 时不过滤分类
    """
    type: Optional[MediaType] = None
    category: Optional[str] = None
    limit: int = Field(settings.MEDIA_LIST_LIMIT, ge=1, le=settings.MAX_LIST_LIMIT)

    model_config = ConfigDict(extra="forbid")


class MediaInteractionsOut(BaseModel):
    """媒体卡片上的交互状态快照"""
    media_id: str
    creator_id: str
    likes: ToggleState
    follows: ToggleState
