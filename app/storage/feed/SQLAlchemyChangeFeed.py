# app/storage/feed/SQLAlchemyChangeFeed.py

import asyncio
import inspect
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Type

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.schemas.change import ALL_EVENTS, ChangeEvent, ChangeEventType, RowFilter
from app.storage.feed.feed_interface import IChangeFeed, OnChange
from app.core.logx import logger

# 挂在 session.info 上、等待提交的变更
_PENDING_KEY = "_change_feed_pending"


class Subscription:
    """
    一次订阅：
    - 回调总是在订阅者自己的事件循环上执行（call_soon_threadsafe 投递）
    - 投递时再检查一次 cancelled，保证 cancel() 后不会再回调
    """

    def __init__(
        self,
        feed: "SQLAlchemyChangeFeed",
        table: str,
        row_filter: RowFilter,
        on_change: OnChange,
        events: frozenset,
        loop: asyncio.AbstractEventLoop,
    ):
        self._feed = feed
        self.table = table
        self.row_filter = row_filter
        self.events = events
        self._on_change = on_change
        self._loop = loop
        self._cancelled = False
        # 协程回调产生的任务，持有引用防止被 GC
        self._tasks: set = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._feed._unregister(self)
        logger.debug(f"change feed: unsubscribed {self.table} [{self.row_filter}]")

    def accepts(self, change: ChangeEvent) -> bool:
        return (
            not self._cancelled
            and change.table == self.table
            and change.type in self.events
            and self.row_filter.matches(change.row)
        )

    def schedule(self) -> None:
        """从任意线程投递一次通知"""
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._deliver)

    def _deliver(self) -> None:
        if self._cancelled:
            return
        try:
            result = self._on_change()
        except Exception:
            logger.exception(f"change feed callback failed for {self.table} [{self.row_filter}]")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"change feed callback failed for {self.table} [{self.row_filter}]",
                exc_info=exc,
            )


class SQLAlchemyChangeFeed(IChangeFeed):
    """
    基于 SQLAlchemy 会话事件的进程内变更中心：
    - after_flush：记录本次 flush 中新增 / 修改 / 删除的行
    - after_commit：事务提交后才把这些变更发给匹配的订阅者
    - after_rollback：丢弃未提交的变更
    只能看到走 ORM 工作单元的写入（session.add / session.delete），
    批量 Core 语句不会产生通知。
    """

    def __init__(self, session_class: Type[Session] = Session):
        self._session_class = session_class
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        event.listen(session_class, "after_flush", self._collect)
        event.listen(session_class, "after_commit", self._release)
        event.listen(session_class, "after_rollback", self._discard)

    # ---------- 订阅 ----------

    async def subscribe(
        self,
        table: str,
        row_filter: RowFilter,
        on_change: OnChange,
        events: Optional[Iterable[ChangeEventType]] = None,
    ) -> Subscription:
        loop = asyncio.get_running_loop()
        sub = Subscription(
            feed=self,
            table=table,
            row_filter=row_filter,
            on_change=on_change,
            events=frozenset(events) if events is not None else ALL_EVENTS,
            loop=loop,
        )
        self._subscriptions[table].append(sub)
        logger.debug(f"change feed: subscribed {table} [{row_filter}]")
        # 让出一次控制权，与远端订阅建立时的挂起点保持一致
        await asyncio.sleep(0)
        return sub

    def subscriber_count(self, table: str) -> int:
        return len(self._subscriptions.get(table, ()))

    def publish(self, change: ChangeEvent) -> None:
        for sub in list(self._subscriptions.get(change.table, ())):
            if sub.accepts(change):
                sub.schedule()

    def close(self) -> None:
        """解除会话事件监听并取消所有订阅"""
        for subs in list(self._subscriptions.values()):
            for sub in list(subs):
                sub.cancel()
        event.remove(self._session_class, "after_flush", self._collect)
        event.remove(self._session_class, "after_commit", self._release)
        event.remove(self._session_class, "after_rollback", self._discard)

    def _unregister(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.table)
        if subs and sub in subs:
            subs.remove(sub)

    # ---------- 会话事件 ----------

    def _collect(self, session: Session, flush_context) -> None:
        pending = session.info.setdefault(_PENDING_KEY, [])
        for obj in session.new:
            pending.append(_to_change(obj, ChangeEventType.INSERT))
        for obj in session.dirty:
            if session.is_modified(obj, include_collections=False):
                pending.append(_to_change(obj, ChangeEventType.UPDATE))
        for obj in session.deleted:
            pending.append(_to_change(obj, ChangeEventType.DELETE))

    def _release(self, session: Session) -> None:
        pending = session.info.pop(_PENDING_KEY, None)
        if not pending:
            return
        for change in pending:
            self.publish(change)

    def _discard(self, session: Session) -> None:
        session.info.pop(_PENDING_KEY, None)


def _to_change(obj, change_type: ChangeEventType) -> ChangeEvent:
    table = obj.__table__
    row = {column.key: getattr(obj, column.key, None) for column in table.columns}
    return ChangeEvent(table=table.name, type=change_type, row=row)
