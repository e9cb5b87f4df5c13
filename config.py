"""Configuration module for Reminder Dispatcher.

This module provides configuration settings using Pydantic Settings.
Environment variables can be used to override default values.
"""

from datetime import timedelta
from typing import Optional

from pydantic_settings import BaseSettings


class ConfigurationError(RuntimeError):
    """Raised when a required setting (the store location) is missing."""


class Settings(BaseSettings):
    """Application settings for Reminder Dispatcher.

    All settings can be overridden via environment variables.
    Example: export DATABASE_URL="postgresql://..."
    """

    # Store Configuration
    DATABASE_URL: Optional[str] = None
    """Store connection URL. Required: the dispatch cycle refuses to run without it"""

    PUBLIC_STORE_URL: Optional[str] = None
    """Browser-facing store location returned by /api/config"""

    PUBLIC_STORE_KEY: Optional[str] = None
    """Browser-facing store key returned by /api/config"""

    # API Server Configuration
    API_HOST: str = "0.0.0.0"
    """API server host address"""

    API_PORT: int = 8005
    """API server port"""

    # Push Configuration
    BARK_BASE_URL: str = "https://api.day.app/"
    """Hosted push service used for short device keys"""

    BARK_GROUP: str = "Reminders"
    """Group label attached to every notification"""

    BARK_CRITICAL_LEVEL: str = "critical"
    BARK_NORMAL_LEVEL: str = "active"
    BARK_CRITICAL_SOUND: str = "gotosleep"
    BARK_NORMAL_SOUND: str = "default"

    DEFAULT_NOTIFICATION_BODY: str = "⏰ 时间到了，请尽快处理"
    """Body used when a reminder has no notes"""

    HTTP_TIMEOUT: float = 10.0
    """Timeout in seconds for each push request"""

    # Dispatch Configuration
    REMINDER_LOOKAHEAD_MIN: float = 1
    """Dispatch window in minutes on each side of now (floored at 1)"""

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    """Level for every component logger"""

    LOG_DIR: Optional[str] = None
    """Directory for rotating log files (default: logs/ next to the modules)"""

    # Background Worker Configuration
    WORKER_ENABLED: bool = False
    """Enable/disable the in-process periodic runner"""

    WORKER_CHECK_INTERVAL: int = 60
    """Interval in seconds between dispatch cycles (default: 60 seconds)"""

    class Config:
        """Pydantic config"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @property
    def dispatch_window(self) -> timedelta:
        """Symmetric tolerance around now, never below one minute."""
        return timedelta(minutes=max(1, self.REMINDER_LOOKAHEAD_MIN))

    def require_database_url(self) -> str:
        """Return DATABASE_URL or raise ConfigurationError."""
        if not self.DATABASE_URL:
            raise ConfigurationError("Missing DATABASE_URL environment variable.")
        return self.DATABASE_URL


# Global settings instance
settings = Settings()
