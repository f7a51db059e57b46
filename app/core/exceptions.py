# domain_exceptions.py
from typing import Optional


class InteractionError(Exception):
    """
    社交交互（点赞 / 关注 / 评论）写入链路上的所有已知失败的基类：
    - 控制器捕获这一族异常后回滚本地乐观状态，记 WARNING
    - 其他异常说明是程序错误：控制器同样回滚，但记 ERROR 并带上堆栈
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StoreUnavailable(InteractionError):
    """
    远端存储不可达（网络 / 连接池 / 超时）：
    - 对 exists / count 而言表示“未知”，调用方不能当成 False / 0
    """

    def __init__(self, operation: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        if message is None:
            message = f"store unavailable during {operation}" if operation else "store unavailable"
        super().__init__(message)


class DuplicateEdge(InteractionError):
    """同一 (user, subject) 已存在一条点赞 / 关注记录（唯一约束冲突）"""

    def __init__(self, relation, user_id: str, subject_id: str):
        self.relation = relation
        self.user_id = user_id
        self.subject_id = subject_id
        super().__init__(f"user {user_id} already has a {relation} edge on {subject_id}")


class EdgeNotFound(InteractionError):
    """
    取消点赞 / 取消关注时找不到对应记录：
    - 情况 1：从未点赞 / 关注
    - 情况 2：已被另一个客户端取消
    """

    def __init__(self, relation, user_id: str, subject_id: str, message: Optional[str] = None):
        self.relation = relation
        self.user_id = user_id
        self.subject_id = subject_id
        if message is None:
            message = f"user {user_id} has no {relation} edge on {subject_id}"
        super().__init__(message)


class EdgeRejected(InteractionError):
    """
    存储拒绝了这条边，但并不是重复：
    - 通常是外键约束失败（用户或被点赞 / 关注的对象不存在）
    """

    def __init__(self, relation, user_id: str, subject_id: str):
        self.relation = relation
        self.user_id = user_id
        self.subject_id = subject_id
        super().__init__(f"store rejected {relation} edge from {user_id} on {subject_id}")


class CommentValidationError(InteractionError):
    """评论内容 trim 之后为空"""

    def __init__(self, message: str = "comment content must not be empty"):
        super().__init__(message)


class ProfileNotFound(Exception):
    """找不到用户主页"""
    def __init__(self, profile_id: str | None = None, message: str | None = None):
        if message:
            super().__init__(message)
        else:
            super().__init__(f"profile {profile_id} not found")


class MediaNotFound(Exception):
    """找不到媒体内容"""
    def __init__(self, media_id: str | None = None, message: str | None = None):
        if message:
            super().__init__(message)
        else:
            super().__init__(f"media {media_id} not found")


class InvalidCredentials(Exception):
    """邮箱或密码错误"""
    def __init__(self, message="Invalid email or password"):
        super().__init__(message)


class EmailAlreadyRegistered(Exception):
    """注册时邮箱已被占用"""

    def __init__(self, email: Optional[str] = None, message: Optional[str] = None):
        if message:
            self.message = message
        elif email is not None:
            self.message = f"Email '{email}' is already registered."
        else:
            self.message = "Email is already registered."

        super().__init__(self.message)
