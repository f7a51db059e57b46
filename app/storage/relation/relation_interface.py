# app/storage/relation/relation_interface.py

from typing import Protocol

from app.models.relation import RelationKind
from app.schemas.interaction import EdgeOut


class IRelationRepository(Protocol):
    """
    可开关社交关系（点赞 / 关注）的仓库接口协议（数据层抽象接口）
    一个实例只负责一种关系，控制器依赖本接口，不依赖具体实现
    """

    relation: RelationKind
    table_name: str        # 变更订阅用的表名
    subject_column: str    # 变更订阅用的过滤列

    async def exists(self, user_id: str, subject_id: str) -> bool:
        """
        user_id 是否对 subject_id 存在一条边：
        - 存储不可达时抛 StoreUnavailable（调用方应视为“未知”，而不是 False）
        """
        ...

    async def count(self, subject_id: str) -> int:
        """
        subject_id 上的边总数（不区分发起者）
        """
        ...

    async def insert(self, user_id: str, subject_id: str) -> EdgeOut:
        """
        新建一条边：
        - 已存在 => 抛 DuplicateEdge（依赖存储的唯一约束，变更通知可能与本地状态赛跑）
        - 因其他约束（如外键）被拒 => 抛 EdgeRejected
        """
        ...

    async def remove(self, user_id: str, subject_id: str) -> None:
        """
        删除一条边：
        - 不存在 => 抛 EdgeNotFound
        """
        ...
