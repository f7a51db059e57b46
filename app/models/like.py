from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, UniqueConstraint, Index
import uuid
from app.models.base import Base
from app.core.time import now_utc


class ProfileLike(Base):
    """ 用户主页点赞表，对应数据库中的 likes 表。

        CREATE TABLE IF NOT EXISTS likes (
            id VARCHAR(36) PRIMARY KEY,                      -- 点赞记录 ID（UUID）
            user_id VARCHAR(36) NOT NULL,                    -- 点赞用户 (FK -> users.id)
            profile_id VARCHAR(36) NOT NULL,                 -- 被点赞主页 (FK -> profiles.id)
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,  -- 点赞时间

            CONSTRAINT uq_likes_user_profile UNIQUE (user_id, profile_id)
        );
        CREATE INDEX idx_likes_profile ON likes (profile_id);
    """

    __tablename__ = "likes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=now_utc)

    __table_args__ = (
        # 每个用户对同一主页只能点赞一次（存储侧唯一的互斥手段）
        UniqueConstraint("user_id", "profile_id", name="uq_likes_user_profile"),
        Index("idx_likes_profile", "profile_id"),
    )


class MediaLike(Base):
    """ 媒体点赞表，对应数据库中的 media_likes 表。

        CREATE TABLE IF NOT EXISTS media_likes (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL,                    -- 点赞用户 (FK -> users.id)
            media_id VARCHAR(36) NOT NULL,                   -- 被点赞媒体 (FK -> media.id)
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

            CONSTRAINT uq_media_likes_user_media UNIQUE (user_id, media_id)
        );
    """

    __tablename__ = "media_likes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    media_id = Column(String(36), ForeignKey("media.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=now_utc)

    __table_args__ = (
        UniqueConstraint("user_id", "media_id", name="uq_media_likes_user_media"),
        Index("idx_media_likes_media", "media_id"),
    )
