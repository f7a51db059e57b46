from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, UniqueConstraint, Index
import uuid
from app.models.base import Base
from app.core.time import now_utc


class ProfileFollow(Base):
    """ 用户主页关注表，记录谁关注了哪个主页

        CREATE TABLE IF NOT EXISTS follows (
            id VARCHAR(36) PRIMARY KEY,
            follower_id VARCHAR(36) NOT NULL,                -- 关注者 (FK -> users.id)
            following_id VARCHAR(36) NOT NULL,               -- 被关注主页 (FK -> profiles.id)
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

            CONSTRAINT uq_follows_follower_following UNIQUE (follower_id, following_id)
        );
        CREATE INDEX idx_follows_following ON follows (following_id);
    """

    __tablename__ = "follows"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # 关注者ID
    follower_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # 被关注主页ID
    following_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=now_utc)

    __table_args__ = (
        # 联合唯一约束：确保每个用户只能关注一次某个主页
        UniqueConstraint("follower_id", "following_id", name="uq_follows_follower_following"),
        Index("idx_follows_following", "following_id"),
    )


class CreatorFollow(Base):
    """ 创作者关注表（媒体页上的“关注创作者”）

        CREATE TABLE IF NOT EXISTS creator_follows (
            id VARCHAR(36) PRIMARY KEY,
            follower_id VARCHAR(36) NOT NULL,                -- 关注者 (FK -> users.id)
            creator_id VARCHAR(36) NOT NULL,                 -- 创作者主页 (FK -> profiles.id)
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

            CONSTRAINT uq_creator_follows_follower_creator UNIQUE (follower_id, creator_id)
        );
    """

    __tablename__ = "creator_follows"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    follower_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    creator_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=now_utc)

    __table_args__ = (
        UniqueConstraint("follower_id", "creator_id", name="uq_creator_follows_follower_creator"),
        Index("idx_creator_follows_creator", "creator_id"),
    )
