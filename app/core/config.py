from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database（异步驱动：sqlite+aiosqlite / postgresql+asyncpg）
    DATABASE_URL: str = "sqlite+aiosqlite:///./interactions.db"
    SQL_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Argon2 成本参数（memory_cost 单位 KiB）
    ARGON2_TIME_COST: int = 2
    ARGON2_MEMORY_COST: int = 19456
    ARGON2_PARALLELISM: int = 1

    # 访问令牌（JWT），生产环境必须通过环境变量覆盖 SECRET_KEY
    SECRET_KEY: str = "dev-only-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # 列表默认条数
    COMMENT_LIST_LIMIT: int = 50      # 评论流一次拉取的最大条数
    RECENT_PROFILES_LIMIT: int = 3    # 首页展示的最新用户数
    MEDIA_LIST_LIMIT: int = 50        # 媒体列表默认条数
    MAX_LIST_LIMIT: int = 100         # 客户端可请求的上限

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
