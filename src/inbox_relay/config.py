"""
Configuration settings for the inbox relay worker.

Static settings are loaded from environment variables with sensible defaults.
Use .env file for local development. Values that operators change at runtime
(channel URL, registration state, batch size...) live in the persisted
RuntimeConfig and only take their defaults from here.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Inbox Relay"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Instance identity ===
    INSTANCE_NAME: str = "relay"
    ACCOUNT_EMAIL: str = ""

    # === Storage ===
    STORE_BACKEND: str = "redis"  # "redis" or "memory"
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50
    LEASE_TTL_SECONDS: int = 60

    # === Celery ===
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    CELERY_TASK_TIME_LIMIT: int = 300  # seconds
    SCAN_INTERVAL_MINUTES: int = 15

    # === Channel / Hub ===
    CHANNEL_URL: str = ""
    CALLBACK_URL: str = ""
    HUB_URL: str = ""
    HTTP_TIMEOUT: float = 30.0

    # === Queue defaults (seed values for RuntimeConfig) ===
    BATCH_SIZE: int = 10
    RATE_LIMIT_MS: int = 1000
    INFLIGHT_TIMEOUT_MINUTES: int = 120
    MAX_ITEM_RETRIES: int = 3
    INBOUND_MODE: str = "webhook"
    LOG_RETENTION: int = 500
    CONTEXT_CHAR_LIMIT: int = 10000

    # === Mailbox (IMAP) ===
    MAILBOX_BACKEND: str = "imap"  # "imap" or "memory"
    IMAP_HOST: str = "imap.gmail.com"
    IMAP_PORT: int = 993
    IMAP_USERNAME: str = ""
    IMAP_PASSWORD: Optional[str] = None
    IMAP_FOLDER: str = "INBOX"
    IMAP_SEARCH: str = "UNSEEN"

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


# Global settings instance
settings = Settings()
