import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
MINUTES_PER_DAY = 24 * 60


def get_database_url() -> str:
    """Return DATABASE_URL, or an absolute SQLite path next to the package.

    SQLite is the single-process default. Point DATABASE_URL at PostgreSQL
    (or any SQLAlchemy URL) to share plans between processes.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        return db_url

    db_path = (Path(__file__).parent.parent.parent / "plans.db").resolve()
    db_url = f"sqlite:///{db_path}"
    logger.warning("DATABASE_URL not set, using local SQLite file", database_url=db_url)
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    notifications_enabled: bool = Field(
        default=True,
        validation_alias="NOTIFICATIONS_ENABLED",
        description="Arm plan reminders on create/update (cancellation always happens)",
    )
    default_notification_options: str = Field(
        default="end_time",
        validation_alias="DEFAULT_NOTIFICATION_OPTIONS",
        description="Comma-separated reminder options applied to new plans",
    )
    timeline_minute_step: int = Field(
        default=60,
        validation_alias="TIMELINE_MINUTE_STEP",
        description="Snapping granularity (minutes) for timeline drag selection",
    )
    form_minute_step: int = Field(
        default=5,
        validation_alias="FORM_MINUTE_STEP",
        description="Granularity (minutes) of the start/end pickers in the edit form",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Upper-case the level; unknown levels fall back to INFO."""
        level = value.upper()
        if level not in LOG_LEVELS:
            logger.warning("Unknown LOG_LEVEL, defaulting to INFO", log_level=value, valid_levels=LOG_LEVELS)
            return "INFO"
        return level

    @field_validator("timeline_minute_step", "form_minute_step")
    @classmethod
    def validate_minute_step(cls, value: int) -> int:
        """Minute steps must divide the day evenly."""
        if value <= 0 or MINUTES_PER_DAY % value != 0:
            logger.warning("Minute step does not divide the day, defaulting to 60", minute_step=value)
            return 60
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
