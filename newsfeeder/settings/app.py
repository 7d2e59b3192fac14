"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    db_path: Path = Field(
        default=Path("state/newsfeeder.sqlite"),
        validation_alias="NEWSFEEDER_DB_PATH",
    )
    request_timeout: float = Field(
        default=60.0, gt=0, validation_alias="NEWSFEEDER_REQUEST_TIMEOUT"
    )
    max_retries: int = Field(default=2, ge=0, validation_alias="NEWSFEEDER_MAX_RETRIES")
    allow_future_bonus: bool = Field(
        default=False, validation_alias="NEWSFEEDER_ALLOW_FUTURE_BONUS"
    )
    timezone: str = Field(default="Asia/Seoul", validation_alias="NEWSFEEDER_TIMEZONE")


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
