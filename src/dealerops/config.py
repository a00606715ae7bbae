"""Application configuration using environment variables."""

from datetime import timedelta, tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .scheduling.dates import REFERENCE_TIMEZONE_NAME, resolve_timezone
from .scheduling.models import ScheduleFlags

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # PostgREST endpoint serving the jobs table
    postgrest_url: Optional[AnyHttpUrl] = Field(
        default=None,
        validation_alias=AliasChoices("POSTGREST_URL", "SUPABASE_REST_URL", "postgrest_url"),
    )
    postgrest_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices(
            "POSTGREST_API_KEY",
            "SUPABASE_ANON_KEY",
            "postgrest_api_key",
        ),
    )
    request_timeout: float = Field(
        default=15.0,
        validation_alias=AliasChoices("REQUEST_TIMEOUT", "timeout"),
        ge=1,
    )

    schedule_timezone: str = Field(
        default=REFERENCE_TIMEZONE_NAME,
        validation_alias=AliasChoices("SCHEDULE_TIMEZONE", "schedule_timezone"),
    )
    include_promised_only: bool = Field(
        default=True,
        validation_alias=AliasChoices("INCLUDE_PROMISED_ONLY", "include_promised_only"),
    )
    conflict_buffer_minutes: int = Field(
        default=0,
        ge=0,
        le=24 * 60,
        validation_alias=AliasChoices(
            "CONFLICT_BUFFER_MINUTES",
            "conflict_buffer_minutes",
        ),
    )

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )
    log_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("LOG_DIR", "log_dir"),
    )

    @property
    def timezone(self) -> tzinfo:
        return resolve_timezone(self.schedule_timezone)

    @property
    def conflict_buffer(self) -> timedelta:
        return timedelta(minutes=self.conflict_buffer_minutes)

    def schedule_flags(self) -> ScheduleFlags:
        """Return the pipeline flags configured for this deployment."""

        return ScheduleFlags(
            include_promised_only=self.include_promised_only,
            conflict_buffer=self.conflict_buffer,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["PROJECT_ROOT", "Settings", "get_settings"]
