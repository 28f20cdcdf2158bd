"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
See .env.example for required variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ==========================================================================
    # Telegram
    # ==========================================================================
    telegram_bot_token: SecretStr = Field(description="Bot API token from BotFather")
    telegram_bot_username: str | None = Field(
        default=None,
        description="Bot username for deep links. Resolved via getMe when unset",
    )
    telegram_api_url: str = Field(
        default="https://api.telegram.org",
        description="Bot API base URL",
    )
    admin_chat_id: int = Field(description="Moderation group chat ID")
    channel_id: int = Field(description="Public channel where approved confessions are posted")
    voice_staging_chat_id: int | None = Field(
        default=None,
        description="Chat used to upload anonymized voice. Defaults to admin_chat_id",
    )
    update_mode: Literal["polling", "webhook"] = Field(
        default="polling",
        description="How updates are received from Telegram",
    )
    webhook_url: str | None = Field(
        default=None,
        description="Public URL Telegram posts updates to (webhook mode)",
    )
    webhook_secret: SecretStr | None = Field(
        default=None,
        description="Secret token Telegram echoes in X-Telegram-Bot-Api-Secret-Token",
    )
    bot_enabled: bool = Field(
        default=True,
        description="Start the bot application with the API server",
    )

    # ==========================================================================
    # Database
    # ==========================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/mirrorbot.db",
        description="SQLAlchemy async database URL",
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    event_queue_size: int = Field(
        default=1000,
        description="Maximum inbound events buffered before producers wait",
    )

    # ==========================================================================
    # Voice Anonymization
    # ==========================================================================
    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")
    rubberband_path: str = Field(default="rubberband", description="rubberband executable")
    voice_stage_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for each external pipeline stage",
    )
    voice_cleanup_grace: float = Field(
        default=2.0,
        description="Delay in seconds before a job's temp directory is removed",
    )
    voice_max_concurrent_jobs: int = Field(
        default=2,
        description="Maximum voice jobs running at once",
    )
    voice_bitrate: str = Field(default="64k", description="Opus output bitrate")
    voice_temp_dir: str | None = Field(
        default=None,
        description="Parent directory for per-job temp dirs (system default when unset)",
    )

    # ==========================================================================
    # Sessions & Moderation
    # ==========================================================================
    cleanup_interval_seconds: float = Field(
        default=600.0,
        description="Interval between stale-state sweeps",
    )
    session_idle_minutes: int = Field(
        default=30,
        description="Sessions idle longer than this are dropped",
    )
    comment_idle_minutes: int = Field(
        default=10,
        description="Comment sessions idle longer than this expire",
    )
    waiting_idle_minutes: int = Field(
        default=30,
        description="Waiting users inactive longer than this leave the queue",
    )
    admin_contact_cooldown_days: int = Field(
        default=7,
        description="Days before a user may contact the admins again",
    )
    report_ban_threshold: int = Field(
        default=3,
        description="Reports against a user that trigger an automatic ban",
    )

    # ==========================================================================
    # Derived Properties
    # ==========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def staging_chat_id(self) -> int:
        """Chat that receives anonymized voice uploads."""
        if self.voice_staging_chat_id is not None:
            return self.voice_staging_chat_id
        return self.admin_chat_id


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Use dependency injection in FastAPI:
        settings: Settings = Depends(get_settings)
    """
    return Settings()  # type: ignore[call-arg]  # loads from env
