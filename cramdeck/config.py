from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Keeps datetimes naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Cramdeck"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'cramdeck.db'}"
    target_retention: float = 0.9
    maximum_interval: int = 36500  # 100 years
    history_length: int = 5
    again_reset_threshold: int = 3
    max_again_count: int = 10
    final_stretch_days: int = 7
    leech_threshold: int = 6
    requeue_gap: int = 3
    debug: bool = False

    model_config = {"env_prefix": "CRAMDECK_", "env_file": ".env"}


settings = Settings()
