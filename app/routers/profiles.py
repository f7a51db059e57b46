from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket
from fastapi.encoders import jsonable_encoder

from app.core.biz_response import BizResponse
from app.core.config import settings
from app.core.exceptions import ProfileNotFound, StoreUnavailable
from app.core.logx import logger

from app.service import profile_svc
from app.service.profile_svc import ProfileInteractions
from app.routers.live import open_session, serve_interactions

from app.storage.database import (
    get_change_feed,
    get_comment_repo,
    get_profile_follow_repo,
    get_profile_like_repo,
    get_profile_repo,
    get_user_repo,
)
from app.storage.profile.profile_interface import IProfileRepository
from app.storage.relation.relation_interface import IRelationRepository
from app.storage.comment.comment_interface import ICommentRepository
from app.storage.feed.feed_interface import IChangeFeed
from app.storage.user.user_interface import IUserRepository

profiles_router = APIRouter(prefix="/profiles", tags=["profiles"])


@profiles_router.get("/recent")
async def list_recent_profiles(
    limit: int = Query(settings.RECENT_PROFILES_LIMIT, ge=1, le=settings.MAX_LIST_LIMIT),
    profile_repo: IProfileRepository = Depends(get_profile_repo),
):
    """
    最新注册的主页（首页卡片列表）
    """
    try:
        result = await profile_svc.list_recent_profiles(profile_repo=profile_repo, limit=limit, to_dict=True)
        return BizResponse(data=jsonable_encoder(result))
    except StoreUnavailable as e:
        return BizResponse(data=None, msg=str(e), status_code=503)
    except Exception as e:
        logger.exception("list_recent_profiles error")
        return BizResponse(data=None, msg=str(e), status_code=500)


@profiles_router.get("/{profile_id}")
async def get_profile(profile_id: str, profile_repo: IProfileRepository = Depends(get_profile_repo)):
    try:
        profile = await profile_svc.get_profile(profile_repo=profile_repo, profile_id=profile_id, to_dict=True)
        return BizResponse(data=jsonable_encoder(profile))
    except ProfileNotFound as e:
        return BizResponse(data=None, msg=str(e), status_code=404)
    except StoreUnavailable as e:
        return BizResponse(data=None, msg=str(e), status_code=503)
    except Exception as e:
        logger.exception(e)
        return BizResponse(data=None, msg=str(e), status_code=500)


@profiles_router.websocket("/{profile_id}/interactions")
async def profile_interactions(
    websocket: WebSocket,
    profile_id: str,
    token: Optional[str] = None,
    profile_repo: IProfileRepository = Depends(get_profile_repo),
    like_repo: IRelationRepository = Depends(get_profile_like_repo),
    follow_repo: IRelationRepository = Depends(get_profile_follow_repo),
    comment_repo: ICommentRepository = Depends(get_comment_repo),
    feed: IChangeFeed = Depends(get_change_feed),
    user_repo: IUserRepository = Depends(get_user_repo),
):
    """
    主页卡片的实时交互通道：
    - 推送：点赞 / 关注 / 评论状态快照
    - 接收：{"action": "toggle_like"} / {"action": "toggle_follow"} / {"action": "comment", "content": "..."}
    - ?token=<访问令牌> 确定当前用户；不带则只读，令牌无效以 4401 关闭
    """
    await websocket.accept()
    try:
        await profile_svc.get_profile(profile_repo=profile_repo, profile_id=profile_id, to_dict=False)
    except ProfileNotFound as e:
        await websocket.close(code=4404, reason=str(e))
        return
    except StoreUnavailable as e:
        await websocket.close(code=1013, reason=str(e))
        return

    session = await open_session(websocket, user_repo, token)
    if session is None:
        return
    viewer = session.current_user()

    interactions = ProfileInteractions(
        profile_id=profile_id,
        viewer_id=viewer.id if viewer else None,
        like_repo=like_repo,
        follow_repo=follow_repo,
        comment_repo=comment_repo,
        feed=feed,
    )
    await serve_interactions(
        websocket,
        interactions,
        actions={
            "toggle_like": lambda _msg: interactions.toggle_like(),
            "toggle_follow": lambda _msg: interactions.toggle_follow(),
            "comment": lambda msg: interactions.add_comment(str(msg.get("content", ""))),
        },
        session=session,
    )
