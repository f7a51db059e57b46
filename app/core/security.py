from datetime import timedelta
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from app.core.config import settings
from app.core.exceptions import InvalidCredentials
from app.core.time import now_utc

# 全局复用一个实例，成本参数见 app.core.config
pwd_hasher = PasswordHasher(
    time_cost=settings.ARGON2_TIME_COST,
    memory_cost=settings.ARGON2_MEMORY_COST,
    parallelism=settings.ARGON2_PARALLELISM,
)


def hash_password(plain_password: str) -> str:
    """注册账号时对明文密码做 Argon2 哈希"""
    return pwd_hasher.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    登录时校验明文密码：
    - 不匹配、哈希格式损坏都视为校验失败，不向上抛
    """
    try:
        return pwd_hasher.verify(hashed_password, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """签发访问令牌，sub 为用户 id"""
    expire = now_utc() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"sub": user_id, "exp": expire}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    校验访问令牌并返回用户 id：
    - 签名不对、已过期、缺少 sub 都抛 InvalidCredentials
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise InvalidCredentials("Invalid or expired token") from e
    user_id = payload.get("sub")
    if not user_id:
        raise InvalidCredentials("Invalid or expired token")
    return user_id
