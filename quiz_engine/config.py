"""Configuration settings using pydantic-settings."""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend API
    API_BASE_URL: str = Field(
        default="http://127.0.0.1:8000/api",
        description="Root URL of the e-learning REST backend"
    )
    API_TOKEN: str = Field(
        default="",
        description="Bearer token sent with every request (omitted when empty)"
    )
    API_TIMEOUT: int = Field(default=30, description="API request timeout in seconds")

    # Timers
    TIMER_TICK_SECONDS: float = Field(
        default=1.0,
        description="Interval between countdown ticks in seconds"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    LOG_FILE: str = Field(
        default="",
        description="Path to log file (stdout only when empty)"
    )

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
