# app/storage/relation/SQLAlchemyRelationRepository.py

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.relation import RELATION_TABLES, RelationKind
from app.schemas.interaction import EdgeOut
from app.storage.relation.relation_interface import IRelationRepository
from app.core.db import store_errors, transaction
from app.core.exceptions import DuplicateEdge, EdgeNotFound, EdgeRejected
from app.core.time import as_utc


class SQLAlchemyRelationRepository(IRelationRepository):
    """
    使用 SQLAlchemy 实现的点赞 / 关注仓库
    - 每次调用单独开一个会话：控制器是长生命周期的，不能一直占着连接
    - 写入走 ORM 工作单元，提交后由变更中心发出通知
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], relation: RelationKind):
        self.session_factory = session_factory
        self.relation = relation
        self._table = RELATION_TABLES[relation]
        self.table_name = self._table.table_name
        self.subject_column = self._table.subject_column

    # ---------- 内部基础查询 ----------

    @property
    def _model(self):
        return self._table.model

    def _actor_col(self):
        return getattr(self._model, self._table.actor_column)

    def _subject_col(self):
        return getattr(self._model, self._table.subject_column)

    def _edge_query(self, user_id: str, subject_id: str):
        """定位 (user, subject) 的那一条边"""
        return (
            select(self._model)
            .where(self._actor_col() == user_id, self._subject_col() == subject_id)
            .limit(1)
        )

    def _to_edge(self, row) -> EdgeOut:
        return EdgeOut(
            id=row.id,
            relation=self.relation,
            user_id=getattr(row, self._table.actor_column),
            subject_id=getattr(row, self._table.subject_column),
            created_at=as_utc(row.created_at),
        )

    # ---------- 查询 ----------

    async def exists(self, user_id: str, subject_id: str) -> bool:
        async with store_errors(f"{self.relation}.exists"), self.session_factory() as session:
            row = (
                await session.execute(
                    select(self._model.id)
                    .where(self._actor_col() == user_id, self._subject_col() == subject_id)
                    .limit(1)
                )
            ).first()
            return row is not None

    async def count(self, subject_id: str) -> int:
        async with store_errors(f"{self.relation}.count"), self.session_factory() as session:
            total = (
                await session.execute(
                    select(func.count()).select_from(self._model).where(self._subject_col() == subject_id)
                )
            ).scalar_one()
            return int(total)

    # ---------- 写入 ----------

    async def insert(self, user_id: str, subject_id: str) -> EdgeOut:
        """
        新建一条边：
        - 不先查再插，直接依赖唯一约束
        - 约束失败后再查一次：边已存在 => DuplicateEdge，否则（外键等）=> EdgeRejected
        """
        row = self._model(**{self._table.actor_column: user_id, self._table.subject_column: subject_id})
        try:
            async with store_errors(f"{self.relation}.insert"), self.session_factory() as session:
                async with transaction(session):
                    session.add(row)
                    await session.flush()
                    edge = self._to_edge(row)
        except IntegrityError as e:
            if await self.exists(user_id, subject_id):
                raise DuplicateEdge(relation=self.relation, user_id=user_id, subject_id=subject_id) from e
            raise EdgeRejected(relation=self.relation, user_id=user_id, subject_id=subject_id) from e
        return edge

    async def remove(self, user_id: str, subject_id: str) -> None:
        async with store_errors(f"{self.relation}.remove"), self.session_factory() as session:
            async with transaction(session):
                row = (await session.execute(self._edge_query(user_id, subject_id))).scalar_one_or_none()
                if row is None:
                    raise EdgeNotFound(relation=self.relation, user_id=user_id, subject_id=subject_id)
                await session.delete(row)
