from enum import Enum
from typing import NamedTuple, Type

from app.models.base import Base
from app.models.like import ProfileLike, MediaLike
from app.models.follow import ProfileFollow, CreatorFollow


class RelationKind(str, Enum):
    """可开关（至多一条边）的社交关系类型"""
    PROFILE_LIKE = "profile_like"        # 点赞主页
    PROFILE_FOLLOW = "profile_follow"    # 关注主页
    MEDIA_LIKE = "media_like"            # 点赞媒体
    CREATOR_FOLLOW = "creator_follow"    # 关注媒体的创作者

    def __str__(self) -> str:
        return self.value


class RelationTable(NamedTuple):
    model: Type[Base]
    actor_column: str     # 发起关系的用户列
    subject_column: str   # 被点赞 / 被关注对象列

    @property
    def table_name(self) -> str:
        return self.model.__tablename__


RELATION_TABLES = {
    RelationKind.PROFILE_LIKE: RelationTable(ProfileLike, "user_id", "profile_id"),
    RelationKind.PROFILE_FOLLOW: RelationTable(ProfileFollow, "follower_id", "following_id"),
    RelationKind.MEDIA_LIKE: RelationTable(MediaLike, "user_id", "media_id"),
    RelationKind.CREATOR_FOLLOW: RelationTable(CreatorFollow, "follower_id", "creator_id"),
}

# 评论表的主体列
COMMENT_SUBJECT_COLUMN = "profile_id"
