from datetime import datetime, timezone


def now_utc() -> datetime:
    """返回带时区的 UTC 当前时间"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    统一成带时区的 UTC 时间：
    - SQLite 读回来的时间不带 tzinfo，按 UTC 处理
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
