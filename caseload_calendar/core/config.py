# caseload_calendar/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables at runtime.

    These settings are used for:
    - DB connection
    - Logging
    - Occurrence engine tuning (match tolerance, default span, horizon)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Caseload Calendar"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./caseload_calendar.db",
        description="SQLAlchemy-compatible database URL",
    )

    LOG_LEVEL: str = Field("INFO", description="Root log level.")
    LOG_FORMAT: str = Field("text", description="Log output format: text or json.")

    # --- Occurrence engine ---
    MATCH_TOLERANCE_MINUTES: int = Field(
        default=120,
        ge=0,
        description=(
            "Maximum distance between a logged session start and a scheduled "
            "occurrence start for the time-tolerant matching tiers."
        ),
    )
    DEFAULT_DURATION_MINUTES: int = Field(
        default=30,
        ge=1,
        description="Span used when a template or record has neither end time nor duration.",
    )
    EXPANSION_HORIZON_DAYS: int = Field(
        default=365,
        ge=0,
        description=(
            "Forward horizon (from the window start) used to expand open-ended "
            "daily/weekly templates."
        ),
    )
    TIMEZONE: str = Field(
        default="UTC",
        description=(
            "IANA zone the calendar is kept in. Offset-aware session and meeting "
            "timestamps (e.g. UTC \"Z\" values) are converted to it before matching."
        ),
    )
    OCCURRENCE_CACHE_SIZE: int = Field(
        default=32,
        ge=0,
        description="Number of computed occurrence lists kept in the memo cache.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
