"""Centralized application configuration for the Farmgate gateway."""
from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from apscheduler.triggers.cron import CronTrigger


_ROOT_DIR = Path(__file__).resolve().parents[3]
_PACKAGE_DIR = _ROOT_DIR / "backend" / "farmgate"
_DEFAULT_ENV_FILES: tuple[Path, ...] = (
    _ROOT_DIR / ".env",
    _PACKAGE_DIR / ".env",
)


class AuthSettings(BaseModel):
    """Session token configuration."""

    jwt_secret: str = Field(default="farmgate-development-secret-change-me", min_length=8)
    algorithm: str = "HS256"
    token_ttl_seconds: int = Field(default=604_800, ge=60)
    demo_login_enabled: bool = True
    demo_email_domain: str = "farmgate.in"

    @field_validator("algorithm", mode="before")
    @classmethod
    def _normalise_algorithm(cls, value: str | None) -> str:
        if value is None:
            return "HS256"
        cleaned = value.strip().upper()
        if not cleaned.startswith("HS"):
            raise ValueError("Only HMAC signing algorithms are supported")
        return cleaned


class StorageSettings(BaseModel):
    """Order store configuration.

    When ``database_url`` is unset the gateway keeps orders in process memory.
    """

    database_url: str | None = None
    sqlalchemy_echo: bool = False

    @field_validator("database_url", mode="before")
    @classmethod
    def _clean_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class OrderSettings(BaseModel):
    """Order numbering and pricing defaults."""

    number_prefix: str = Field(default="F10", min_length=1, max_length=8)
    delivery_charge: float = Field(default=50.0, ge=0.0)
    currency: str = "INR"


class RealtimeSettings(BaseModel):
    """Live connection tuning."""

    queue_size: int = Field(default=100, ge=1)


class NotificationSettings(BaseModel):
    """Outbound e-mail/SMS side channel."""

    mock_email: bool = True
    mock_sms: bool = True
    webhook_url: str | None = None
    admin_email: EmailStr = "admin@farmgate.in"
    timeout_seconds: float = Field(default=5.0, gt=0)


class FeedSettings(BaseModel):
    """External data providers feeding the scheduled broadcasts."""

    news_url: str | None = None
    prices_url: str | None = None
    weather_url: str | None = None
    timeout_seconds: float = Field(default=5.0, gt=0)


class JobSettings(BaseModel):
    """Cadence and toggle for a single recurring job."""

    cron: str
    enabled: bool = True

    @field_validator("cron")
    @classmethod
    def _validate_cron(cls, value: str) -> str:
        cleaned = " ".join(value.split())
        try:
            CronTrigger.from_crontab(cleaned)
        except ValueError as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc
        return cleaned


class SchedulerSettings(BaseModel):
    """Recurring broadcast configuration."""

    enabled: bool = True
    timezone: str = "UTC"
    news: JobSettings = Field(default_factory=lambda: JobSettings(cron="0 */4 * * *"))
    prices: JobSettings = Field(default_factory=lambda: JobSettings(cron="*/5 * * * *"))
    weather: JobSettings = Field(default_factory=lambda: JobSettings(cron="0 6 * * *"))
    report: JobSettings = Field(default_factory=lambda: JobSettings(cron="0 9 * * *"))


class Settings(BaseSettings):
    """Top level gateway configuration."""

    env: str = Field(default="dev", validation_alias=AliasChoices("env", "ENV", "APP_ENV"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("log_level", "LOG_LEVEL"))
    frontend_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("frontend_url", "FRONTEND_URL"),
    )
    auth: AuthSettings = Field(default_factory=AuthSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    orders: OrderSettings = Field(default_factory=OrderSettings)
    realtime: RealtimeSettings = Field(default_factory=RealtimeSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    feeds: FeedSettings = Field(default_factory=FeedSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)

    model_config = SettingsConfigDict(
        env_file=_DEFAULT_ENV_FILES,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url(self) -> str | None:
        return self.storage.database_url


settings = Settings()

__all__ = [
    "AuthSettings",
    "FeedSettings",
    "JobSettings",
    "NotificationSettings",
    "OrderSettings",
    "RealtimeSettings",
    "SchedulerSettings",
    "Settings",
    "StorageSettings",
    "settings",
]
