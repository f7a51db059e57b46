from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignUp(BaseModel):
    """
    注册账号（同时创建主页）
    """
    email: EmailStr
    password: str = Field(min_length=6)
    username: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1)

    model_config = ConfigDict(extra="forbid")


class SignIn(BaseModel):
    email: EmailStr
    password: str

    model_config = ConfigDict(extra="forbid")


class AccountOut(BaseModel):
    """
    仓库内部使用：含密码哈希，禁止直接对外返回
    """
    id: str
    email: str
    password_hash: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CurrentUser(BaseModel):
    """会话中的当前登录用户"""
    id: str
    email: str

    model_config = ConfigDict(from_attributes=True, frozen=True)


class TokenOut(BaseModel):
    """
    注册 / 登录的返回：
    - access_token 用于 Authorization: Bearer 头，以及实时通道的 ?token= 参数
    """
    access_token: str
    token_type: str = "bearer"
    user: CurrentUser
