import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from fastapi.encoders import jsonable_encoder

from app.service.auth_svc import AuthEvent, AuthSession
from app.storage.user.user_interface import IUserRepository

from app.core.exceptions import InvalidCredentials, StoreUnavailable
from app.core.logx import logger

# action 名 -> 处理函数（参数为客户端消息）
ActionHandler = Callable[[Dict[str, Any]], Awaitable[Any]]

# 会话结束后由推送任务关闭连接
_CLOSE = object()
SESSION_ENDED = 4401


async def open_session(websocket: WebSocket, user_repo: IUserRepository, token: Optional[str]) -> Optional[AuthSession]:
    """
    为一条已 accept 的连接建立登录会话：
    - 没带 token => 匿名会话（只读）
    - token 无效 / 过期 => 以 4401 关闭连接，返回 None
    """
    session = AuthSession(user_repo)
    if token is None:
        return session
    try:
        await session.resume(token)
    except InvalidCredentials as e:
        logger.warning(f"websocket rejected: {e}")
        await websocket.close(code=SESSION_ENDED, reason=str(e))
        return None
    except StoreUnavailable as e:
        await websocket.close(code=1013, reason=str(e))
        return None
    return session


def _log_task_failure(name: str) -> Callable[[asyncio.Task], None]:
    def callback(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"websocket task '{name}' failed", exc_info=exc)

    return callback


async def serve_interactions(
    websocket: WebSocket,
    interactions,
    actions: Dict[str, ActionHandler],
    session: Optional[AuthSession] = None,
) -> None:
    """
    把一组交互控制器挂到一条 WebSocket 连接上：
    - 连接建立 => mount；断开 => close（订阅随之取消）
    - 每次状态变化推送 {"type": "state", "data": <快照>}
    - 客户端消息 {"action": ...} 交给对应处理函数，在后台任务里执行，
      这样连续两次点击会真正并发，由控制器的 pending 去重
    - {"action": "sign_out"}：结束会话，推送 {"type": "auth", ...} 后以 4401 关闭，
      客户端按新身份重新连接
    - 所有发送都经过同一个推送任务，连接上不会有并发写
    """
    outbox: asyncio.Queue = asyncio.Queue()
    interactions.add_listener(lambda snapshot: outbox.put_nowait({"type": "state", "data": jsonable_encoder(snapshot)}))
    running: set = set()
    auth_sub = None

    if session is not None:
        def on_auth_change(event: AuthEvent, user) -> None:
            # 身份变了，这组控制器的视角随之作废
            interactions.close()
            outbox.put_nowait({"type": "auth", "event": event.value, "user_id": user.id if user else None})
            outbox.put_nowait(_CLOSE)

        auth_sub = session.on_auth_state_change(on_auth_change)
        actions = {**actions, "sign_out": lambda _msg: _sign_out(session)}

    async def pump() -> None:
        while True:
            message = await outbox.get()
            if message is _CLOSE:
                await websocket.close(code=SESSION_ENDED, reason="session ended")
                return
            await websocket.send_json(message)

    async with interactions:
        sender = asyncio.create_task(pump())
        sender.add_done_callback(_log_task_failure("pump"))
        outbox.put_nowait({"type": "state", "data": jsonable_encoder(interactions.snapshot())})
        try:
            while websocket.application_state is WebSocketState.CONNECTED:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    # 不是合法 JSON 的帧
                    logger.warning("malformed websocket frame")
                    outbox.put_nowait({"type": "error", "msg": "invalid message"})
                    continue
                action = message.get("action") if isinstance(message, dict) else None
                handler = actions.get(action) if isinstance(action, str) else None
                if handler is None:
                    logger.warning(f"unknown websocket action: {message!r}")
                    outbox.put_nowait({"type": "error", "msg": "unknown action"})
                    continue
                task = asyncio.create_task(handler(message))
                running.add(task)
                task.add_done_callback(running.discard)
                task.add_done_callback(_log_task_failure(action))
        except WebSocketDisconnect:
            logger.info("interaction websocket disconnected")
        finally:
            if auth_sub is not None:
                auth_sub.cancel()
            pending = [sender, *running]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)


async def _sign_out(session: AuthSession) -> None:
    session.sign_out()
