from datetime import datetime, timedelta, timezone

from app.models.user import User
from app.models.profile import Profile
from app.models.media import Media

T0 = datetime(2025, 11, 16, 9, 0, tzinfo=timezone.utc)


async def add_rows(factory, *rows) -> None:
    async with factory() as session:
        session.add_all(rows)
        await session.commit()


def account(username: str, minutes_ago: int = 0):
    """一个账号 + 对应主页"""
    user = User(email=f"{username}@example.com", password_hash="x")
    user.id = f"user-{username}"
    profile = Profile(
        id=user.id,
        name=username.title(),
        username=username,
        email=user.email,
        created_at=T0 - timedelta(minutes=minutes_ago),
    )
    return user, profile


def media_item(media_id: str, creator_id: str, minutes_ago: int = 0, **kwargs):
    values = dict(
        id=media_id,
        creator_id=creator_id,
        title=f"Title {media_id}",
        type="blog",
        category="music",
        created_at=T0 - timedelta(minutes=minutes_ago),
        updated_at=T0 - timedelta(minutes=minutes_ago),
    )
    values.update(kwargs)
    return Media(**values)
