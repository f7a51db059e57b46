# app/storage/comment/comment_interface.py

from typing import List, Protocol

from app.schemas.interaction import CommentOut


class ICommentRepository(Protocol):
    """
    主页评论仓库接口协议（数据层抽象接口）
    评论是“只追加”的多值关系：同一用户可以对同一主页评论多次
    """

    table_name: str
    subject_column: str

    async def list_comments(self, subject_id: str, limit: int) -> List[CommentOut]:
        """
        某主页的评论列表：
        - 按 created_at 倒序（最新在前）
        - 最多 limit 条
        """
        ...

    async def count(self, subject_id: str) -> int:
        """某主页的评论总数"""
        ...

    async def append(self, user_id: str, subject_id: str, text: str) -> CommentOut:
        """
        追加一条评论：
        - text trim 之后为空 => 抛 CommentValidationError
        - 返回服务端确认后的评论（正式 id + 服务端时间）
        """
        ...
