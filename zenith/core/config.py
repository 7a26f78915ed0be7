"""Configuration management for zenith."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    database_path: str = Field(default="zenith_data/zenith.db", description="SQLite key-value store file path")

    # Calendar Configuration
    timezone: str = Field(default="UTC", description="IANA time zone used to decide calendar-day boundaries")

    # LLM Configuration
    llm_base_url: str = Field(default="https://api.openai.com/v1", description="Chat completions API base URL")
    llm_api_key: str | None = Field(
        default=None, description="Fallback API key when none is stored in the key-value store"
    )
    llm_model_id: str = Field(default="gpt-4o-mini", description="Model ID used for task generation")
    llm_max_tokens: int = Field(default=1000, description="Maximum tokens requested per completion")
    llm_temperature: float = Field(default=0.7, description="Sampling temperature for task generation")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Storage keys
    TASKS_KEY: str = "saved_tasks"
    ARCHIVED_TASKS_KEY: str = "archived_tasks"
    STREAK_KEY: str = "user_streak_data"
    POINTS_KEY: str = "user_points_data"
    PREFERENCES_KEY: str = "user_preferences"
    BACKUP_KEY: str = "app_data_backup"
    LAST_SAVE_KEY: str = "last_save_date"
    API_KEY_KEY: str = "llm_api_key"

    # Points & Levels
    POINTS_PER_LEVEL: int = 100
    RECENT_TRANSACTIONS_LIMIT: int = 10

    # Task Generation
    GENERATION_HISTORY_LIMIT: int = 10
    RECENT_TASK_CONTEXT_LIMIT: int = 5
    RECENT_HISTORY_DAYS: int = 7
    NEUTRAL_COMPLETION_RATE: float = 0.5
    LOW_COMPLETION_RATE: float = 0.5
    HIGH_COMPLETION_RATE: float = 0.8

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # Stats
    TREND_IMPROVING_THRESHOLD: float = 0.1
    PRODUCTIVITY_TREND_THRESHOLD: float = 0.15
    NEEDS_FOCUS_RATE: float = 0.4
    NEEDS_FOCUS_MIN_TASKS: int = 2
    BALANCED_RATE: float = 0.6
    BALANCED_MIN_CATEGORIES: int = 3
    EXCELLENT_SCORE: float = 0.8
    GOOD_SCORE: float = 0.6
    WEEKLY_PROGRESS_WEEKS: int = 8
    CATEGORY_STREAK_LOOKBACK_DAYS: int = 30

    # Validation
    UNTITLED_TASK_TITLE: str = "Untitled Task"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
