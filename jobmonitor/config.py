from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./jobmonitor.db")

    # Application
    config_file: str = Field(default="config.yml")
    base_url: str = Field(default="http://localhost:8000")
    debug: bool = Field(default=False)

    # Logging
    log_file: str = Field(default="")
    log_rotation: str = Field(default="10 MB")
    log_retention: str = Field(default="14 days")

    # CSV import
    import_directory: str = Field(default="./import")
    processed_directory: str = Field(default="./import/processed")
    hotfolder_enabled: bool = Field(default=True)

    # Scheduler
    scheduler_enabled: bool = Field(default=True)

    # Notifications
    notifications_enabled: bool = Field(default=True)
    notification_mock_mode: bool = Field(default=False)
    notification_from_email: str = Field(default="noreply@jobmonitor.local")
    notification_subject_prefix: str = Field(default="[Job Monitor]")
    resend_api_key: str = Field(default="")
    notification_webhook_url: str = Field(default="")


class ImportConfig:
    """CSV import tuning from config.yml."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.grace_period_seconds: float = data.get("grace_period_seconds", 1.0)
        self.interval_minutes: int = data.get("interval_minutes", 5)
        self.hourly_sweep: bool = data.get("hourly_sweep", True)
        self.recent_failure_hours: int = data.get("recent_failure_hours", 24)
        self.default_page_size: int = data.get("default_page_size", 20)
        self.max_page_size: int = data.get("max_page_size", 200)
        # Needed on network shares and some container mounts
        self.force_polling: bool = data.get("force_polling", False)


class NotificationConfig:
    """Notification configuration from config.yml and environment."""

    def __init__(self, data: dict[str, Any], settings: "Settings") -> None:
        self.enabled: bool = settings.notifications_enabled and data.get("enabled", True)
        self.mock_mode: bool = settings.notification_mock_mode or data.get("mock_mode", False)
        self.failure_watermark: bool = data.get("failure_watermark", True)
        self.from_email: str = settings.notification_from_email
        self.subject_prefix: str = settings.notification_subject_prefix

        # Credentials from environment
        self.resend_api_key: str = settings.resend_api_key
        self.webhook_url: str = settings.notification_webhook_url


class AppConfig:
    """Combined application configuration from .env and config.yml."""

    def __init__(self) -> None:
        self.settings = Settings()
        self._load_yaml()

    def _load_yaml(self) -> None:
        self.config_path = Path(self.settings.config_file)
        data: dict[str, Any] = {}
        if self.config_path.exists():
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}

        self.importer = ImportConfig(data.get("import", {}))
        self.notifications = NotificationConfig(data.get("notifications", {}), self.settings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_config() -> AppConfig:
    """Get cached full config instance."""
    return AppConfig()
