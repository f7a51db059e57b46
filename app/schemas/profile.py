from typing import List
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.profile import AccountType
from app.schemas.interaction import ToggleState, CommentFeedState


class ProfileOut(BaseModel):
    """
    对外返回的主页信息
    """
    id: str
    name: str
    username: str
    avatar_url: str = ""
    bio: str = ""
    account_type: AccountType = AccountType.MEMBER
    is_verified: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BatchProfilesOut(BaseModel):
    count: int
    items: List[ProfileOut]

    model_config = ConfigDict(from_attributes=True)


class ProfileInteractionsOut(BaseModel):
    """
    一个主页卡片上的全部交互状态（推送给前端的快照）
    """
    profile_id: str
    likes: ToggleState
    follows: ToggleState
    comments: CommentFeedState
