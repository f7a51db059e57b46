from enum import Enum
from typing import Callable, List, Optional

from app.schemas.user import CurrentUser, SignIn, SignUp
from app.storage.user.user_interface import IUserRepository

from app.core.exceptions import InvalidCredentials
from app.core.logx import logger
from app.core.security import create_access_token, decode_access_token, hash_password, verify_password


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


AuthListener = Callable[[AuthEvent, Optional[CurrentUser]], None]


class AuthSubscription:
    def __init__(self, session: "AuthSession", listener: AuthListener):
        self._session = session
        self._listener = listener
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._session._listeners.remove(self)


class AuthSession:
    """
    客户端会话：
    - current_user()：当前登录用户，未登录为 None
    - on_auth_state_change()：只在真正发生登录 / 登出切换时通知
    - resume() / issue_token()：与访问令牌互转，跨请求延续同一个登录身份
    """

    def __init__(self, user_repo: IUserRepository):
        self.user_repo = user_repo
        self._user: Optional[CurrentUser] = None
        self._listeners: List[AuthSubscription] = []

    def current_user(self) -> Optional[CurrentUser]:
        return self._user

    def on_auth_state_change(self, listener: AuthListener) -> AuthSubscription:
        sub = AuthSubscription(self, listener)
        self._listeners.append(sub)
        return sub

    async def sign_up(self, data: SignUp) -> CurrentUser:
        """
        注册并登录：
        1. 对明文密码做 Argon2 哈希
        2. 同一事务创建账号 + 主页（邮箱重复抛 EmailAlreadyRegistered）
        3. 切换为登录状态
        """
        account = await self.user_repo.create_account(data, hash_password(data.password))
        logger.info(f"Created account id={account.id}")
        user = CurrentUser(id=account.id, email=account.email)
        self._transition(user)
        return user

    async def sign_in(self, data: SignIn) -> CurrentUser:
        account = await self.user_repo.get_account_by_email(data.email)
        if account is None or not verify_password(data.password, account.password_hash):
            raise InvalidCredentials()
        user = CurrentUser(id=account.id, email=account.email)
        self._transition(user)
        return user

    async def resume(self, token: str) -> CurrentUser:
        """
        用访问令牌恢复登录状态（实时通道 / 带 Bearer 头的请求）：
        - 令牌无效、过期，或账号已不存在 => InvalidCredentials
        """
        user_id = decode_access_token(token)
        account = await self.user_repo.get_account(user_id)
        if account is None:
            raise InvalidCredentials("Account no longer exists")
        user = CurrentUser(id=account.id, email=account.email)
        self._transition(user)
        return user

    def issue_token(self) -> str:
        """为当前登录用户签发访问令牌"""
        if self._user is None:
            raise InvalidCredentials("Not signed in")
        return create_access_token(self._user.id)

    def sign_out(self) -> None:
        self._transition(None)

    def _transition(self, user: Optional[CurrentUser]) -> None:
        previous = self._user
        if (previous.id if previous else None) == (user.id if user else None):
            return
        self._user = user
        event = AuthEvent.SIGNED_IN if user is not None else AuthEvent.SIGNED_OUT
        logger.info(f"auth state changed: {event.value} ({(user or previous).id})")
        for sub in list(self._listeners):
            try:
                sub._listener(event, user)
            except Exception:
                logger.exception("auth state listener failed")
