import pytest
import pytest_asyncio
from sqlalchemy.exc import DatabaseError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.db import store_errors
from app.core.exceptions import (
    CommentValidationError,
    DuplicateEdge,
    EdgeNotFound,
    EdgeRejected,
    EmailAlreadyRegistered,
    StoreUnavailable,
)
from app.models.base import Base
from app.models.media import MediaType
from app.models.relation import RelationKind
from app.schemas.change import RowFilter
from app.schemas.media import MediaQuery
from app.schemas.user import SignUp
from app.storage.comment.SQLAlchemyCommentRepository import SQLAlchemyCommentRepository
from app.storage.media.SQLAlchemyMediaRepository import SQLAlchemyMediaRepository
from app.storage.profile.SQLAlchemyProfileRepository import SQLAlchemyProfileRepository
from app.storage.relation.SQLAlchemyRelationRepository import SQLAlchemyRelationRepository
from app.storage.user.SQLAlchemyUserRepository import SQLAlchemyUserRepository
from app.storage.database import enable_sqlite_foreign_keys

from tests.factories import account, add_rows, media_item
from tests.fakes import settle


@pytest.fixture
def unreachable(tmp_path):
    # 父目录不存在，任何连接都会失败
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}", poolclass=NullPool)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def strict_factory(tmp_path):
    # 打开外键检查的库，用来区分“重复”与“外键失败”
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'strict.db'}", poolclass=NullPool)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


# ----------------------------- 点赞 / 关注 -----------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "relation, table, column",
    [
        (RelationKind.PROFILE_LIKE, "likes", "profile_id"),
        (RelationKind.PROFILE_FOLLOW, "follows", "following_id"),
        (RelationKind.MEDIA_LIKE, "media_likes", "media_id"),
        (RelationKind.CREATOR_FOLLOW, "creator_follows", "creator_id"),
    ],
)
async def test_edge_lifecycle(store, relation, table, column):
    repo = SQLAlchemyRelationRepository(store.factory, relation)
    assert repo.table_name == table
    assert repo.subject_column == column

    assert await repo.exists("u1", "s1") is False
    assert await repo.count("s1") == 0

    edge = await repo.insert("u1", "s1")
    await repo.insert("u2", "s1")
    await repo.insert("u1", "s2")

    assert edge.relation is relation
    assert (edge.user_id, edge.subject_id) == ("u1", "s1")
    assert edge.created_at.tzinfo is not None
    assert await repo.exists("u1", "s1") is True
    assert await repo.count("s1") == 2

    await repo.remove("u1", "s1")

    assert await repo.exists("u1", "s1") is False
    assert await repo.count("s1") == 1
    assert await repo.count("s2") == 1


@pytest.mark.asyncio
async def test_second_insert_is_rejected_by_unique_constraint(store):
    repo = SQLAlchemyRelationRepository(store.factory, RelationKind.PROFILE_LIKE)
    await repo.insert("u1", "s1")

    with pytest.raises(DuplicateEdge) as exc:
        await repo.insert("u1", "s1")

    assert exc.value.relation is RelationKind.PROFILE_LIKE
    assert await repo.count("s1") == 1


@pytest.mark.asyncio
async def test_remove_missing_edge_raises(store):
    repo = SQLAlchemyRelationRepository(store.factory, RelationKind.PROFILE_FOLLOW)

    with pytest.raises(EdgeNotFound):
        await repo.remove("u1", "s1")


@pytest.mark.asyncio
async def test_only_committed_writes_reach_subscribers(store):
    repo = SQLAlchemyRelationRepository(store.factory, RelationKind.MEDIA_LIKE)
    hits = []
    await store.feed.subscribe(repo.table_name, RowFilter(column=repo.subject_column, value="m1"), lambda: hits.append(1))

    await repo.insert("u1", "m1")
    await settle()
    assert hits == [1]

    with pytest.raises(DuplicateEdge):
        await repo.insert("u1", "m1")
    await settle()
    assert hits == [1]

    await repo.remove("u1", "m1")
    await settle()
    assert hits == [1, 1]


@pytest.mark.asyncio
@pytest.mark.parametrize("call", ["exists", "count", "insert", "remove"])
async def test_unreachable_store_raises_store_unavailable(unreachable, call):
    repo = SQLAlchemyRelationRepository(unreachable, RelationKind.PROFILE_LIKE)
    args = ("s1",) if call == "count" else ("u1", "s1")

    with pytest.raises(StoreUnavailable) as exc:
        await getattr(repo, call)(*args)

    assert call in exc.value.operation


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached"),
        DatabaseError("SELECT 1", {}, Exception("disk I/O error")),
    ],
)
async def test_pool_timeouts_and_driver_errors_become_store_unavailable(error):
    with pytest.raises(StoreUnavailable) as exc:
        async with store_errors("likes.count"):
            raise error

    assert exc.value.operation == "likes.count"
    assert exc.value.__cause__ is error


@pytest.mark.asyncio
async def test_integrity_errors_are_left_to_the_repository():
    error = IntegrityError("INSERT INTO likes", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(IntegrityError):
        async with store_errors("likes.insert"):
            raise error


@pytest.mark.asyncio
async def test_foreign_key_failure_is_not_reported_as_duplicate(strict_factory):
    user, profile = account("bob")
    await add_rows(strict_factory, user)
    await add_rows(strict_factory, profile)
    repo = SQLAlchemyRelationRepository(strict_factory, RelationKind.PROFILE_LIKE)

    with pytest.raises(EdgeRejected) as exc:
        await repo.insert(user.id, "user-ghost")
    assert not isinstance(exc.value, DuplicateEdge)
    assert exc.value.subject_id == "user-ghost"

    await repo.insert(user.id, profile.id)
    with pytest.raises(DuplicateEdge):
        await repo.insert(user.id, profile.id)
    assert await repo.count(profile.id) == 1


# ----------------------------- 评论 -----------------------------

@pytest.mark.asyncio
async def test_comments_are_trimmed_and_listed_newest_first(store):
    repo = SQLAlchemyCommentRepository(store.factory)
    for text in ["first", "  second  ", "third"]:
        await repo.append("u1", "p1", text)
    await repo.append("u2", "p2", "elsewhere")

    latest = await repo.list_comments("p1", limit=2)

    assert [c.content for c in latest] == ["third", "second"]
    assert all(c.subject_id == "p1" and not c.pending for c in latest)
    assert await repo.count("p1") == 3
    assert await repo.count("nobody") == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n"])
async def test_blank_comment_is_rejected_without_writing(store, text):
    repo = SQLAlchemyCommentRepository(store.factory)

    with pytest.raises(CommentValidationError):
        await repo.append("u1", "p1", text)

    assert await repo.count("p1") == 0


@pytest.mark.asyncio
async def test_comment_store_unavailable(unreachable):
    repo = SQLAlchemyCommentRepository(unreachable)

    with pytest.raises(StoreUnavailable):
        await repo.list_comments("p1", limit=10)


# ----------------------------- 主页 / 媒体 -----------------------------

@pytest.mark.asyncio
async def test_recent_profiles_newest_first(store):
    people = [account(name, minutes_ago=m) for name, m in [("ann", 30), ("bob", 1), ("cat", 10), ("dan", 60)]]
    await add_rows(store.factory, *[u for u, _ in people])
    await add_rows(store.factory, *[p for _, p in people])
    repo = SQLAlchemyProfileRepository(store.factory)

    recent = await repo.list_recent(limit=3)

    assert recent.count == 3
    assert [p.username for p in recent.items] == ["bob", "cat", "ann"]
    assert (await repo.get_profile("user-dan")).name == "Dan"
    assert await repo.get_profile("user-nobody") is None

    creators = await repo.get_creators(["user-ann", "user-bob", "user-nobody"])
    assert set(creators) == {"user-ann", "user-bob"}
    assert creators["user-bob"].username == "bob"
    assert await repo.get_creators([]) == {}


@pytest.mark.asyncio
async def test_media_listing_filters(store):
    user, creator = account("maker")
    await add_rows(store.factory, user)
    await add_rows(store.factory, creator)
    await add_rows(
        store.factory,
        media_item("m1", creator.id, minutes_ago=3, type="blog", category="music"),
        media_item("m2", creator.id, minutes_ago=2, type="movie", category="drama"),
        media_item("m3", creator.id, minutes_ago=1, type="blog", category="tech"),
    )
    repo = SQLAlchemyMediaRepository(store.factory)

    everything = await repo.list_media(MediaQuery(category="all"))
    blogs = await repo.list_media(MediaQuery(type=MediaType.BLOG))
    tech_blogs = await repo.list_media(MediaQuery(type=MediaType.BLOG, category="tech"))
    newest = await repo.list_media(MediaQuery(limit=1))

    assert [m.id for m in everything] == ["m3", "m2", "m1"]
    assert [m.id for m in blogs] == ["m3", "m1"]
    assert [m.id for m in tech_blogs] == ["m3"]
    assert [m.id for m in newest] == ["m3"]
    assert (await repo.get_media("m2")).type is MediaType.MOVIE
    assert await repo.get_media("missing") is None


# ----------------------------- 账号 -----------------------------

@pytest.mark.asyncio
async def test_create_account_also_creates_profile(store):
    users = SQLAlchemyUserRepository(store.factory)
    profiles = SQLAlchemyProfileRepository(store.factory)

    created = await users.create_account(
        SignUp(email="Zoe@Example.com", password="secret1", username="zoe", name="Zoe"), "hash"
    )

    assert created.email == "zoe@example.com"
    assert (await users.get_account_by_email("ZOE@example.com")).id == created.id
    assert (await profiles.get_profile(created.id)).username == "zoe"
    assert await users.get_account_by_email("nobody@example.com") is None


@pytest.mark.asyncio
async def test_duplicate_email_is_rejected(store):
    users = SQLAlchemyUserRepository(store.factory)
    await users.create_account(SignUp(email="zoe@example.com", password="secret1", username="zoe", name="Zoe"), "h")

    with pytest.raises(EmailAlreadyRegistered):
        await users.create_account(
            SignUp(email="zoe@example.com", password="secret2", username="zoe2", name="Zoe 2"), "h"
        )
