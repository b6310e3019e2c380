import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "off", "no"}


@dataclass(frozen=True)
class Settings:
    SECRET_KEY: str
    DATABASE_URL: str | None
    PROGRESS_SYNC_PROVIDER: str
    LOCAL_CACHE_DIR: str | None
    LEADERBOARD_LIMIT: int
    ADMIN_LEADERBOARD_LIMIT: int
    PASSWORD_MIN_LENGTH: int
    LOG_LEVEL: str
    SESSION_COOKIE_SECURE: bool


def get_settings() -> Settings:
    return Settings(
        SECRET_KEY=os.getenv("SECRET_KEY", "dev-insecure-key"),
        DATABASE_URL=os.getenv("DATABASE_URL"),
        PROGRESS_SYNC_PROVIDER=os.getenv("PROGRESS_SYNC_PROVIDER", "thread"),
        LOCAL_CACHE_DIR=os.getenv("LOCAL_CACHE_DIR"),
        LEADERBOARD_LIMIT=int(os.getenv("LEADERBOARD_LIMIT", "20")),
        ADMIN_LEADERBOARD_LIMIT=int(os.getenv("ADMIN_LEADERBOARD_LIMIT", "50")),
        PASSWORD_MIN_LENGTH=int(os.getenv("PASSWORD_MIN_LENGTH", "6")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        SESSION_COOKIE_SECURE=_env_bool("SESSION_COOKIE_SECURE", True),
    )
