"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Essence SSE", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # SSE Configuration
    sse_heartbeat_interval_seconds: float = Field(
        default=15.0, description="Idle keep-alive comment interval in seconds (0 disables)"
    )
    sse_default_channel: str = Field(
        default="progress", description="Channel tag used by the demo progress stream"
    )

    # Receiver Configuration
    receiver_connect_timeout_seconds: float = Field(
        default=10.0, description="Receiver connect timeout in seconds"
    )
    receiver_read_timeout_seconds: Optional[float] = Field(
        default=None, description="Receiver read timeout in seconds (None waits forever)"
    )

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("sse_heartbeat_interval_seconds")
    @classmethod
    def validate_heartbeat_interval(cls, v: float) -> float:
        """Validate heartbeat interval."""
        if v < 0:
            raise ValueError("Heartbeat interval cannot be negative")
        return v

    @field_validator("sse_default_channel")
    @classmethod
    def validate_default_channel(cls, v: str) -> str:
        """Channel tags are written on a single event line."""
        if not v or "\n" in v or "\r" in v:
            raise ValueError("Channel tag must be a non-empty single line")
        return v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="ESSENCE_SSE_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
