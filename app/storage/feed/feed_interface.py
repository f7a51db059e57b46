# app/storage/feed/feed_interface.py

from typing import Awaitable, Callable, Iterable, Optional, Protocol, Union

from app.schemas.change import ChangeEventType, RowFilter

# 变更回调：无参数（只是信号），可以是普通函数或协程函数
OnChange = Callable[[], Union[None, Awaitable[None]]]


class ISubscription(Protocol):
    """
    一次订阅的取消句柄：
    - cancel() 之后不会再有任何回调（包括已经排队但还没执行的）
    - 重复 cancel() 无副作用
    """

    @property
    def cancelled(self) -> bool:
        ...

    def cancel(self) -> None:
        ...


class IChangeFeed(Protocol):
    """
    变更通知接口协议：
    - 按 (表, 行过滤条件) 订阅，某行被插入 / 更新 / 删除时回调
    - 回调只是“有变化”的信号，不携带数据，订阅者需要重新拉取权威状态
    - 不保证与写入方自身调用返回的先后顺序，也不保证不重复
    - 多个订阅者之间互不影响
    """

    async def subscribe(
        self,
        table: str,
        row_filter: RowFilter,
        on_change: OnChange,
        events: Optional[Iterable[ChangeEventType]] = None,
    ) -> ISubscription:
        ...
