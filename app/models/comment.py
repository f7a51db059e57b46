from sqlalchemy import Column, String, Text, TIMESTAMP, ForeignKey, Index
import uuid
from app.models.base import Base
from app.core.time import now_utc


class ProfileComment(Base):
    """ 用户主页评论表。与点赞 / 关注不同，同一用户可以对同一主页评论多次，按时间倒序展示。

        CREATE TABLE IF NOT EXISTS comments (
            id VARCHAR(36) PRIMARY KEY,                      -- 评论 ID（UUID）
            user_id VARCHAR(36) NOT NULL,                    -- 评论作者 (FK -> users.id)
            profile_id VARCHAR(36) NOT NULL,                 -- 被评论主页 (FK -> profiles.id)
            content TEXT NOT NULL,                           -- 评论内容（已 trim）
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP   -- 服务端时间
        );
        CREATE INDEX idx_comments_profile_created ON comments (profile_id, created_at);
    """

    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=now_utc)

    __table_args__ = (
        Index("idx_comments_profile_created", "profile_id", "created_at"),
    )
