from datetime import timedelta
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///./timetracker.db"

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # zone used for "midnight of yesterday" and for HH:MM labels in messages
    TIMEZONE: str = "UTC"

    CORS_ORIGINS: list[str] = ["http://localhost:5051", "http://127.0.0.1:5051"]

    MIN_ACTIVITY_DURATION_MIN: int = 5
    MAX_ACTIVITY_DURATION_HOURS: int = 24

    MIN_GAP_FOR_CONFIRMATION_MIN: int = 5
    MAX_GAP_FOR_CONFIRMATION_HOURS: int = 24

    MAX_ACTIVITY_NAME_LENGTH: int = 50
    DEFAULT_ACTIVITY_COLOR: str = "#6366f1"

    ACTIVITY_LOGS_PAGE_SIZE: int = 15

    @property
    def is_prod(self) -> bool:
        return self.ENV.lower() == "prod"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)

    @property
    def min_activity_duration(self) -> timedelta:
        return timedelta(minutes=self.MIN_ACTIVITY_DURATION_MIN)

    @property
    def max_activity_duration(self) -> timedelta:
        return timedelta(hours=self.MAX_ACTIVITY_DURATION_HOURS)

    @property
    def min_gap_for_confirmation(self) -> timedelta:
        return timedelta(minutes=self.MIN_GAP_FOR_CONFIRMATION_MIN)

    @property
    def max_gap_for_confirmation(self) -> timedelta:
        return timedelta(hours=self.MAX_GAP_FOR_CONFIRMATION_HOURS)


settings = Settings()
