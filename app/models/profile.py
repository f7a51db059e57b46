from sqlalchemy import Column, String, Text, Boolean, TIMESTAMP, ForeignKey, Index
from enum import Enum
from app.models.base import Base
from app.core.time import now_utc


class AccountType(str, Enum):
    CREATOR = "creator"  # 创作者
    MEMBER = "member"    # 普通会员


class Profile(Base):
    """ 用户主页表，可被点赞 / 关注 / 评论，也是媒体内容的创作者。

        CREATE TABLE IF NOT EXISTS profiles (
            id VARCHAR(36) PRIMARY KEY,                      -- 与 users.id 相同
            name TEXT NOT NULL,                              -- 展示名
            username VARCHAR(100) UNIQUE NOT NULL,           -- 用户名
            email VARCHAR(255) NOT NULL,                     -- 邮箱
            avatar_url TEXT DEFAULT '',                      -- 头像
            bio TEXT DEFAULT '',                             -- 简介
            account_type VARCHAR(16) DEFAULT 'member',       -- creator / member
            is_verified BOOLEAN DEFAULT false,               -- 是否认证
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

            FOREIGN KEY (id) REFERENCES users(id)
        );
        CREATE INDEX idx_profiles_created_at ON profiles (created_at);
    """

    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    name = Column(Text, nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), nullable=False)
    avatar_url = Column(Text, default="")
    bio = Column(Text, default="")
    account_type = Column(String(16), default=AccountType.MEMBER.value, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=now_utc)

    __table_args__ = (
        Index("idx_profiles_created_at", "created_at"),
    )
