import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        session_secret: str,
        session_max_age_hours: int,
        stats_backend: str,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.session_secret = session_secret
        self.session_max_age_hours = session_max_age_hours
        self.stats_backend = stats_backend
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("BOOKKEEPING_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "bookkeeping.db"
    database_url = os.getenv("BOOKKEEPING_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("BOOKKEEPING_TIMEZONE", "UTC")
    session_secret = os.getenv(
        "BOOKKEEPING_SESSION_SECRET",
        "3f9c2d7e81a4b6c05e2f7a9d1c3b8e4f6a0d2c5b7e9f1a3c5d7e9b1f3a5c7e9d",
    )
    session_max_age_hours = int(os.getenv("BOOKKEEPING_SESSION_MAX_AGE_HOURS", "24"))
    stats_backend = os.getenv("BOOKKEEPING_STATS_BACKEND", "query").lower()
    if stats_backend not in {"query", "scan"}:
        raise ValueError(f"Unsupported stats backend: {stats_backend}")
    log_level = os.getenv("BOOKKEEPING_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        session_secret=session_secret,
        session_max_age_hours=session_max_age_hours,
        stats_backend=stats_backend,
        log_level=log_level,
    )
