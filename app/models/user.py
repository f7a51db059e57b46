from sqlalchemy import Column, String, TIMESTAMP
import uuid
from app.models.base import Base
from app.core.time import now_utc


class User(Base):
    """ 登录账号表（认证侧的 auth.users），只存登录所需信息，展示信息在 profiles 表。

        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(36) PRIMARY KEY,                      -- 账号 ID（UUID）
            email VARCHAR(255) NOT NULL UNIQUE,              -- 登录邮箱
            password_hash VARCHAR(255) NOT NULL,             -- Argon2 密码哈希
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP   -- 注册时间
        );
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=now_utc)
