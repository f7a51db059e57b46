import asyncio
from enum import Enum
from typing import Any, Callable, List, Optional

from app.schemas.change import RowFilter
from app.schemas.interaction import ToggleState
from app.storage.feed.feed_interface import IChangeFeed, ISubscription
from app.storage.relation.relation_interface import IRelationRepository

from app.core.exceptions import InteractionError
from app.core.logx import logger

StateListener = Callable[[Any], None]


class ControllerPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    CANCELLED = "cancelled"   # 已 close，之后不再有任何状态变化


class BaseInteractionController:
    """
    交互控制器的公共生命周期：
    - mount()：初始拉取 -> 订阅变更 -> READY
    - close()：取消订阅、清空监听者，之后所有迟到的结果都直接丢弃
    - 也可以 `async with controller:` 使用，保证 close 一定会被调用
    子类实现 _fetch()（从仓库拉取权威状态）和 _default_state()。
    """

    def __init__(self, feed: IChangeFeed, table: str, row_filter: RowFilter, subject_id: str, user_id: Optional[str]):
        self.feed = feed
        self.table = table
        self.row_filter = row_filter
        self.subject_id = subject_id
        self.user_id = user_id
        self.phase = ControllerPhase.UNINITIALIZED
        self._state = self._default_state()
        self._listeners: List[StateListener] = []
        self._subscription: Optional[ISubscription] = None

    # ---------- 子类实现 ----------

    def _default_state(self):
        raise NotImplementedError

    async def _fetch(self):
        raise NotImplementedError

    # ---------- 状态 / 监听 ----------

    @property
    def state(self):
        return self._state

    @property
    def closed(self) -> bool:
        return self.phase is ControllerPhase.CANCELLED

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """注册状态监听者（渲染层钩子），返回取消注册的函数"""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_state(self, state) -> None:
        if self.closed:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(f"state listener failed on {self.table} [{self.row_filter}]")

    # ---------- 生命周期 ----------

    async def mount(self) -> None:
        if self.phase is not ControllerPhase.UNINITIALIZED:
            raise RuntimeError(f"controller already mounted (phase={self.phase.value})")

        self.phase = ControllerPhase.LOADING
        try:
            fresh = await self._fetch()
        except InteractionError as e:
            if self.closed:
                return
            # 初始加载失败不抛出：保留默认状态，把错误挂在 state.error 上
            logger.warning(f"initial load failed on {self.table} [{self.row_filter}]: {e}")
            self._set_state(self._default_state().model_copy(update={"error": str(e)}))
        except Exception as e:
            if self.closed:
                return
            logger.exception(f"initial load crashed on {self.table} [{self.row_filter}]")
            self._set_state(self._default_state().model_copy(update={"error": str(e)}))
        else:
            if self.closed:
                return
            self._set_state(fresh)

        subscription = await self.feed.subscribe(self.table, self.row_filter, self.refresh)
        if self.closed:
            subscription.cancel()
            return
        self._subscription = subscription
        self.phase = ControllerPhase.READY

    def close(self) -> None:
        if self.closed:
            return
        self.phase = ControllerPhase.CANCELLED
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._listeners.clear()

    async def __aenter__(self):
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def refresh(self) -> None:
        """
        收到变更通知后全量重新拉取，并无条件覆盖本地状态（后写者胜）：
        - 即使此时有一次乐观更新在途，也会被覆盖；在途标记 pending 保持不变
        - 拉取失败时保留当前数据，只更新 error
        """
        if self.closed:
            return
        try:
            fresh = await self._fetch()
        except InteractionError as e:
            if self.closed:
                return
            logger.warning(f"refresh failed on {self.table} [{self.row_filter}]: {e}")
            self._set_state(self._state.model_copy(update={"error": str(e)}))
            return
        except Exception as e:
            if self.closed:
                return
            logger.exception(f"refresh crashed on {self.table} [{self.row_filter}]")
            self._set_state(self._state.model_copy(update={"error": str(e)}))
            return
        if self.closed:
            return
        self._set_state(self._merge_refreshed(fresh))

    def _merge_refreshed(self, fresh):
        return fresh


class ToggleController(BaseInteractionController):
    """
    点赞 / 关注这类“至多一条边”的关系控制器，每个 (subject, relation, 当前用户) 一个实例。

    开关流程（当前状态 A, C）：
    1. 同步记下快照 (A, C)
    2. 立即乐观更新为 (!A, A ? C-1 : C+1)，并通知渲染层
    3. 调用仓库 remove / insert；期间 pending=True，重复的开关请求直接忽略
    4. 成功：乐观状态即为最终状态，不再拉取
    5. 失败：恢复到第 1 步的快照（不是重新计算，避免和期间到达的刷新叠加）
    6. pending=False
    """

    def __init__(self, repo: IRelationRepository, feed: IChangeFeed, subject_id: str, user_id: Optional[str]):
        self.repo = repo
        super().__init__(
            feed=feed,
            table=repo.table_name,
            row_filter=RowFilter(column=repo.subject_column, value=subject_id),
            subject_id=subject_id,
            user_id=user_id,
        )

    def _default_state(self) -> ToggleState:
        return ToggleState()

    async def _fetch(self) -> ToggleState:
        if self.user_id is None:
            # 未登录：只显示总数
            return ToggleState(is_active=False, total_count=await self.repo.count(self.subject_id))
        is_active, total = await asyncio.gather(
            self.repo.exists(self.user_id, self.subject_id),
            self.repo.count(self.subject_id),
        )
        return ToggleState(is_active=is_active, total_count=total)

    def _merge_refreshed(self, fresh: ToggleState) -> ToggleState:
        return fresh.model_copy(update={"pending": self._state.pending})

    async def toggle(self) -> bool:
        """
        切换当前用户的点赞 / 关注：
        - 返回 False 表示请求被忽略（未 READY / 未登录 / 已有请求在途）
        - 远端失败不会抛出，只会回滚
        """
        if self.phase is not ControllerPhase.READY or self.user_id is None:
            return False
        if self._state.pending:
            logger.debug(f"toggle ignored, request in flight on {self.repo.relation} {self.subject_id}")
            return False

        # 1. 快照
        snapshot = self._state
        was_active = snapshot.is_active

        # 2. 乐观更新
        self._set_state(
            snapshot.model_copy(
                update={
                    "is_active": not was_active,
                    # 不做下限截断：仓库计数与 is_active 不一致时由下一次刷新纠正
                    "total_count": snapshot.total_count - 1 if was_active else snapshot.total_count + 1,
                    "pending": True,
                }
            )
        )

        # 3. 远端写入
        committed = False
        try:
            if was_active:
                await self.repo.remove(self.user_id, self.subject_id)
            else:
                await self.repo.insert(self.user_id, self.subject_id)
            committed = True
        except InteractionError as e:
            if not self.closed:
                logger.warning(
                    f"toggle {self.repo.relation} by {self.user_id} on {self.subject_id} failed, rolled back: {e}"
                )
        except Exception:
            # 仓库抛出了约定之外的异常：同样回滚，不向渲染层抛
            if not self.closed:
                logger.exception(
                    f"toggle {self.repo.relation} by {self.user_id} on {self.subject_id} crashed, rolled back"
                )
        finally:
            # 5. 任何方式的失败（包括任务被取消）都回到快照，pending 一定清掉
            if not committed and not self.closed:
                self._set_state(snapshot.model_copy(update={"pending": False}))

        if not committed or self.closed:
            return True

        # 4 + 6. 保留乐观状态，清除 pending
        self._set_state(self._state.model_copy(update={"pending": False}))
        logger.info(
            f"User {self.user_id} {'removed' if was_active else 'added'} {self.repo.relation} "
            f"on {self.subject_id}"
        )
        return True
