from sqlalchemy import Column, String, Text, Boolean, Integer, Numeric, TIMESTAMP, ForeignKey, Index
from enum import Enum
import uuid
from app.models.base import Base
from app.core.time import now_utc


class MediaType(str, Enum):
    MUSIC_VIDEO = "music-video"
    MOVIE = "movie"
    AUDIO_MUSIC = "audio-music"
    BLOG = "blog"
    GALLERY = "gallery"
    RESOURCE = "resource"


class Media(Base):
    """ 媒体内容表（视频 / 音乐 / 博客 / 图集 / 资源），可被点赞，创作者可被关注。

        CREATE TABLE IF NOT EXISTS media (
            id VARCHAR(36) PRIMARY KEY,
            creator_id VARCHAR(36) NOT NULL,                 -- 创作者（FK -> profiles.id）
            title TEXT NOT NULL,
            description TEXT,
            type VARCHAR(32) NOT NULL,                       -- MediaType
            category TEXT NOT NULL,
            thumbnail_url TEXT,
            duration TEXT,                                   -- 视频 / 音频时长
            read_time TEXT,                                  -- 博客阅读时长
            is_premium BOOLEAN DEFAULT false,
            price NUMERIC DEFAULT 0.0,                       -- 资源售价
            rating NUMERIC DEFAULT 0.0,
            view_count INT DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

            FOREIGN KEY (creator_id) REFERENCES profiles(id)
        );
    """

    __tablename__ = "media"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    creator_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(32), nullable=False)
    category = Column(Text, nullable=False)
    thumbnail_url = Column(Text, nullable=True)
    duration = Column(Text, nullable=True)
    read_time = Column(Text, nullable=True)
    is_premium = Column(Boolean, default=False, nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=True)
    rating = Column(Numeric(3, 1), default=0, nullable=True)
    view_count = Column(Integer, default=0, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=now_utc)
    updated_at = Column(TIMESTAMP(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index("idx_media_creator", "creator_id"),
        Index("idx_media_type_category", "type", "category"),
        Index("idx_media_created_at", "created_at"),
    )
