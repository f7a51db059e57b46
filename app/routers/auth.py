from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.security import OAuth2PasswordBearer

from app.schemas.user import SignUp, SignIn, CurrentUser, TokenOut

from app.core.biz_response import BizResponse
from app.service.auth_svc import AuthSession

from app.storage.database import get_user_repo
from app.storage.user.user_interface import IUserRepository

from app.core.exceptions import EmailAlreadyRegistered, InvalidCredentials, StoreUnavailable
from app.core.logx import logger

auth_router = APIRouter(prefix="/auth", tags=["auth"])

# 不带令牌也允许访问（匿名视角），带了就必须有效
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/sign_in", auto_error=False)


async def get_optional_viewer(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    user_repo: IUserRepository = Depends(get_user_repo),
) -> Optional[CurrentUser]:
    """从 Authorization: Bearer 头恢复当前用户，没带头返回 None"""
    if token is None:
        return None
    try:
        return await AuthSession(user_repo).resume(token)
    except InvalidCredentials as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except StoreUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


def _token_response(session: AuthSession, user: CurrentUser) -> dict:
    return jsonable_encoder(TokenOut(access_token=session.issue_token(), user=user))


@auth_router.post("/sign_up", response_model=TokenOut)
async def sign_up(data: SignUp, user_repo: IUserRepository = Depends(get_user_repo)):
    """
    注册账号并登录：
    - 同时创建主页
    - 返回访问令牌，实时通道用 ?token= 带上它
    """
    try:
        session = AuthSession(user_repo)
        user = await session.sign_up(data)
        return BizResponse(data=_token_response(session, user), status_code=201)
    except EmailAlreadyRegistered as e:
        return BizResponse(data=None, msg=str(e), status_code=409)
    except StoreUnavailable as e:
        return BizResponse(data=None, msg=str(e), status_code=503)
    except Exception as e:
        logger.exception("sign_up error")
        return BizResponse(data=None, msg=str(e), status_code=500)


@auth_router.post("/sign_in", response_model=TokenOut)
async def sign_in(data: SignIn, user_repo: IUserRepository = Depends(get_user_repo)):
    try:
        session = AuthSession(user_repo)
        user = await session.sign_in(data)
        return BizResponse(data=_token_response(session, user))
    except InvalidCredentials as e:
        return BizResponse(data=None, msg=str(e), status_code=401)
    except StoreUnavailable as e:
        return BizResponse(data=None, msg=str(e), status_code=503)
    except Exception as e:
        logger.exception("sign_in error")
        return BizResponse(data=None, msg=str(e), status_code=500)


@auth_router.get("/me", response_model=CurrentUser)
async def me(viewer: Optional[CurrentUser] = Depends(get_optional_viewer)):
    """当前令牌对应的用户；未带令牌返回 401"""
    if viewer is None:
        return BizResponse(data=None, msg="Not authenticated", status_code=401)
    return BizResponse(data=jsonable_encoder(viewer))
