"""
Configuration management for the Signal backend.

Centralizes all configuration using Pydantic settings with environment variable support.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration (feedback persistence)
    database_url: str = Field(
        default="sqlite:///./signal.db",
        description="SQLAlchemy database URL"
    )
    db_pool_size: int = Field(
        default=5,
        description="Database connection pool size (ignored for SQLite)"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections (ignored for SQLite)"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Connection pool timeout in seconds"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    # LLM Configuration
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (required at runtime)"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model to use for analysis and grading"
    )
    llm_timeout: int = Field(
        default=60,
        description="Per-request OpenAI client timeout in seconds"
    )
    llm_max_retries: int = Field(
        default=3,
        description="Attempts for rate-limited or timed-out LLM calls"
    )

    # Analysis pipeline deadlines
    content_fetch_timeout_seconds: float = Field(
        default=30.0,
        description="Deadline for the content fetch step"
    )
    analysis_timeout_seconds: float = Field(
        default=60.0,
        description="Deadline for the model analysis step"
    )
    http_fetch_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for a single outbound HTTP request while fetching content"
    )
    max_content_length: int = Field(
        default=50000,
        description="Maximum characters of fetched content passed to the model"
    )

    # Opik telemetry
    opik_api_key: str = Field(
        default="",
        description="Opik API key; telemetry is disabled when empty"
    )
    opik_url_override: Optional[str] = Field(
        default=None,
        description="Opik API URL (takes precedence over OPIK_URL)"
    )
    opik_url: Optional[str] = Field(
        default=None,
        description="Opik API URL"
    )
    opik_project_name: str = Field(
        default="Signal",
        description="Opik project that receives traces"
    )
    opik_workspace_name: Optional[str] = Field(
        default=None,
        description="Opik workspace (takes precedence over OPIK_WORKSPACE)"
    )
    opik_workspace: Optional[str] = Field(
        default=None,
        description="Opik workspace"
    )
    telemetry_grace_seconds: float = Field(
        default=2.0,
        description="How long a request waits for background telemetry before responding"
    )

    # Relay endpoints
    relay_token: str = Field(
        default="",
        description="Shared secret expected in the x-signal-relay-token header"
    )
    relay_dedup_content_evaluation: bool = Field(
        default=True,
        description="Skip content_evaluation events relayed by clients (already logged by /api/analyze)"
    )

    # Application Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def opik_api_url(self) -> str:
        return self.opik_url_override or self.opik_url or "https://www.comet.com/opik/api"

    @property
    def opik_workspace_resolved(self) -> Optional[str]:
        return self.opik_workspace_name or self.opik_workspace

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Returns:
        Settings: Application settings
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None


def validate_required_settings():
    """
    Validate that all required settings are present at runtime.

    Should be called after settings are loaded but before application starts.
    Raises ValueError if required settings are missing.
    """
    settings = get_settings()

    if not settings.openai_api_key:
        raise ValueError(
            "OPENAI_API_KEY environment variable is required but not set. "
            "Please ensure the secret is configured in your deployment environment."
        )

    if not settings.database_url:
        raise ValueError("DATABASE_URL is required but not set")

    return True
