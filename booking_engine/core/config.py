from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./booking_engine.db"
    DB_ECHO: bool = False
    CREATE_TABLES_ON_STARTUP: bool = True

    LOG_LEVEL: str = "INFO"

    # Scheduling defaults
    DEFAULT_TIMEZONE: str = "UTC"
    DEFAULT_SLOT_DURATION_MINUTES: int = 30
    DEFAULT_SLOT_INTERVAL_MINUTES: int | None = None  # None: step equals slot duration
    BOOKING_SEARCH_HORIZON_DAYS: int = 30

    # Booking critical section
    STAFF_LOCK_TIMEOUT_SECONDS: float = 5.0

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
