import logging
import sys

from app.core.config import settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class LogX(logging.LoggerAdapter):
    """
    项目统一日志对象：
    - 业务层 / 路由层直接 `from app.core.logx import logger`
    - is_debug(True) 临时把级别调到 DEBUG，便于排查
    """

    def is_debug(self, on: bool = True) -> None:
        self.logger.setLevel(logging.DEBUG if on else _level_from_settings())


def _level_from_settings() -> int:
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def _build_logger(name: str = "interactions") -> LogX:
    base = logging.getLogger(name)
    if not base.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        base.addHandler(handler)
    base.setLevel(_level_from_settings())
    return LogX(base, {})


logger = _build_logger()
