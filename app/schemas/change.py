from typing import Any, Dict
from enum import Enum

from pydantic import BaseModel, ConfigDict


class ChangeEventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_EVENTS = frozenset(ChangeEventType)


class RowFilter(BaseModel):
    """
    订阅的行过滤条件（单列等值）：
    - 也支持托管存储的写法 "profile_id=eq.<id>"
    """
    column: str
    value: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, expr: str) -> "RowFilter":
        column, sep, rest = expr.partition("=")
        op, dot, value = rest.partition(".")
        if not sep or not dot or op != "eq" or not column:
            raise ValueError(f"unsupported row filter: {expr!r}")
        return cls(column=column, value=value)

    def matches(self, row: Dict[str, Any]) -> bool:
        value = row.get(self.column)
        return value is not None and str(value) == self.value

    def __str__(self) -> str:
        return f"{self.column}=eq.{self.value}"


class ChangeEvent(BaseModel):
    """
    变更中心内部的路由记录：
    - 只用于匹配订阅，不会交给订阅者（通知只是信号，订阅者自行重新拉取）
    """
    table: str
    type: ChangeEventType
    row: Dict[str, Any]

    model_config = ConfigDict(frozen=True)
