"""
Application configuration using Pydantic Settings
Reads from environment variables and .env file

Only process-level settings live here. The per-user settings (Gmail labels,
AI key, last sync) are stored in the Settings tab of the spreadsheet and are
read by packages.common.settings_repository on every run.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    environment: str = Field(default="production", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Google (Gmail + Sheets + Drive)
    google_service_account_json: Optional[str] = Field(default=None, alias="GOOGLE_SERVICE_ACCOUNT_JSON")
    gmail_impersonate_email: Optional[str] = Field(default=None, alias="GMAIL_IMPERSONATE_EMAIL")
    spreadsheet_name: str = Field(default="OmniTicket_DB", alias="SPREADSHEET_NAME")
    spreadsheet_id: Optional[str] = Field(default=None, alias="SPREADSHEET_ID")

    # AI model
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    ai_model: str = Field(default="claude-sonnet-4-5", alias="AI_MODEL")
    ai_max_tokens: int = Field(default=4096, alias="AI_MAX_TOKENS")

    # Pipeline
    normalization_batch_size: int = Field(default=30, alias="NORMALIZATION_BATCH_SIZE")
    ticket_id_strategy: str = Field(default="random", alias="TICKET_ID_STRATEGY")

    # Redis / Celery
    celery_broker_url: str = Field(default="redis://redis:6379/1", alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(default="redis://redis:6379/2", alias="CELERY_RESULT_BACKEND")
    sync_schedule_seconds: float = Field(default=3600.0, alias="SYNC_SCHEDULE_SECONDS")

    # Monitoring
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment"""
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of {valid_envs}")
        return v.lower()

    @field_validator("ticket_id_strategy")
    @classmethod
    def validate_ticket_id_strategy(cls, v):
        """random: new uuid4 per attempt, source: uuid5 of the mailbox item id"""
        valid = ["random", "source"]
        if v.lower() not in valid:
            raise ValueError(f"TICKET_ID_STRATEGY must be one of {valid}")
        return v.lower()

    @field_validator("normalization_batch_size")
    @classmethod
    def validate_batch_size(cls, v):
        if v < 1:
            raise ValueError("NORMALIZATION_BATCH_SIZE must be at least 1")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
