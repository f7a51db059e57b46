from typing import Optional, Protocol

from app.schemas.user import AccountOut, SignUp


class IUserRepository(Protocol):
    """
    登录账号仓库接口协议（数据层抽象接口）
    """

    async def create_account(self, data: SignUp, password_hash: str) -> AccountOut:
        """
        注册：同一事务里创建 users 记录和对应的 profiles 记录
        - 邮箱已被占用 => 抛 EmailAlreadyRegistered
        """
        ...

    async def get_account_by_email(self, email: str) -> Optional[AccountOut]:
        ...

    async def get_account(self, user_id: str) -> Optional[AccountOut]:
        """按 id 取账号（恢复令牌会话时确认账号仍然存在）"""
        ...
