# app/storage/comment/SQLAlchemyCommentRepository.py

from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.comment import ProfileComment
from app.models.relation import COMMENT_SUBJECT_COLUMN
from app.schemas.interaction import CommentOut
from app.storage.comment.comment_interface import ICommentRepository
from app.core.db import store_errors, transaction
from app.core.exceptions import CommentValidationError
from app.core.time import as_utc


class SQLAlchemyCommentRepository(ICommentRepository):
    """
    使用 SQLAlchemy 实现的主页评论仓库
    """

    table_name = ProfileComment.__tablename__
    subject_column = COMMENT_SUBJECT_COLUMN

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def _to_out(row: ProfileComment) -> CommentOut:
        return CommentOut(
            id=row.id,
            user_id=row.user_id,
            subject_id=row.profile_id,
            content=row.content,
            created_at=as_utc(row.created_at),
        )

    async def list_comments(self, subject_id: str, limit: int) -> List[CommentOut]:
        async with store_errors("comments.list"), self.session_factory() as session:
            rows = (
                await session.execute(
                    select(ProfileComment)
                    .where(ProfileComment.profile_id == subject_id)
                    .order_by(ProfileComment.created_at.desc(), ProfileComment.id.desc())
                    .limit(limit)
                )
            ).scalars().all()
            return [self._to_out(r) for r in rows]

    async def count(self, subject_id: str) -> int:
        async with store_errors("comments.count"), self.session_factory() as session:
            total = (
                await session.execute(
                    select(func.count()).select_from(ProfileComment).where(ProfileComment.profile_id == subject_id)
                )
            ).scalar_one()
            return int(total)

    async def append(self, user_id: str, subject_id: str, text: str) -> CommentOut:
        content = (text or "").strip()
        if not content:
            raise CommentValidationError()

        row = ProfileComment(user_id=user_id, profile_id=subject_id, content=content)
        async with store_errors("comments.append"), self.session_factory() as session:
            async with transaction(session):
                session.add(row)
                await session.flush()
                comment = self._to_out(row)
        return comment
