from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket
from fastapi.encoders import jsonable_encoder

from app.core.biz_response import BizResponse
from app.core.config import settings
from app.core.exceptions import MediaNotFound, StoreUnavailable
from app.core.logx import logger

from app.models.media import MediaType
from app.schemas.media import MediaQuery
from app.schemas.user import CurrentUser
from app.service import media_svc
from app.service.media_svc import MediaInteractions
from app.routers.auth import get_optional_viewer
from app.routers.live import open_session, serve_interactions

from app.storage.database import (
    get_change_feed,
    get_creator_follow_repo,
    get_media_like_repo,
    get_media_repo,
    get_profile_repo,
    get_user_repo,
)
from app.storage.media.media_interface import IMediaRepository
from app.storage.profile.profile_interface import IProfileRepository
from app.storage.relation.relation_interface import IRelationRepository
from app.storage.feed.feed_interface import IChangeFeed
from app.storage.user.user_interface import IUserRepository

media_router = APIRouter(prefix="/media", tags=["media"])


@media_router.get("/")
async def list_media(
    type: Optional[MediaType] = None,
    category: Optional[str] = None,
    limit: int = Query(settings.MEDIA_LIST_LIMIT, ge=1, le=settings.MAX_LIST_LIMIT),
    viewer: Optional[CurrentUser] = Depends(get_optional_viewer),
    media_repo: IMediaRepository = Depends(get_media_repo),
    profile_repo: IProfileRepository = Depends(get_profile_repo),
    like_repo: IRelationRepository = Depends(get_media_like_repo),
    follow_repo: IRelationRepository = Depends(get_creator_follow_repo),
):
    """
    媒体列表（带点赞数 / 创作者粉丝数 / 当前用户视角）
    - category=all 表示不过滤分类
    - 带 Authorization: Bearer 时按该用户计算 is_liked_by_user / is_followed_by_user
    """
    try:
        result = await media_svc.list_media(
            media_repo=media_repo,
            profile_repo=profile_repo,
            like_repo=like_repo,
            follow_repo=follow_repo,
            query=MediaQuery(type=type, category=category, limit=limit),
            viewer_id=viewer.id if viewer else None,
            to_dict=True,
        )
        return BizResponse(data=jsonable_encoder(result))
    except StoreUnavailable as e:
        logger.warning(f"list_media: {e}")
        return BizResponse(data=None, msg=str(e), status_code=503)
    except Exception as e:
        logger.exception("list_media error")
        return BizResponse(data=None, msg=str(e), status_code=500)


@media_router.get("/{media_id}")
async def get_media(media_id: str, media_repo: IMediaRepository = Depends(get_media_repo)):
    try:
        media = await media_svc.get_media(media_repo=media_repo, media_id=media_id, to_dict=True)
        return BizResponse(data=jsonable_encoder(media))
    except MediaNotFound as e:
        return BizResponse(data=None, msg=str(e), status_code=404)
    except StoreUnavailable as e:
        return BizResponse(data=None, msg=str(e), status_code=503)
    except Exception as e:
        logger.exception(e)
        return BizResponse(data=None, msg=str(e), status_code=500)


@media_router.websocket("/{media_id}/interactions")
async def media_interactions(
    websocket: WebSocket,
    media_id: str,
    token: Optional[str] = None,
    media_repo: IMediaRepository = Depends(get_media_repo),
    like_repo: IRelationRepository = Depends(get_media_like_repo),
    follow_repo: IRelationRepository = Depends(get_creator_follow_repo),
    feed: IChangeFeed = Depends(get_change_feed),
    user_repo: IUserRepository = Depends(get_user_repo),
):
    """
    媒体卡片的实时交互通道：
    - 接收：{"action": "toggle_like"} / {"action": "toggle_follow"}（关注的是创作者）
    - ?token=<访问令牌> 确定当前用户；不带则只读
    """
    await websocket.accept()
    try:
        media = await media_svc.get_media(media_repo=media_repo, media_id=media_id, to_dict=False)
    except MediaNotFound as e:
        await websocket.close(code=4404, reason=str(e))
        return
    except StoreUnavailable as e:
        await websocket.close(code=1013, reason=str(e))
        return

    session = await open_session(websocket, user_repo, token)
    if session is None:
        return
    viewer = session.current_user()

    interactions = MediaInteractions(
        media=media,
        viewer_id=viewer.id if viewer else None,
        like_repo=like_repo,
        follow_repo=follow_repo,
        feed=feed,
    )
    await serve_interactions(
        websocket,
        interactions,
        actions={
            "toggle_like": lambda _msg: interactions.toggle_like(),
            "toggle_follow": lambda _msg: interactions.toggle_follow(),
        },
        session=session,
    )
