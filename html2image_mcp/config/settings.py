"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Annotated, Optional, List, Union
from pathlib import Path
import json

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="html2image-mcp-server", description="Application name")
    app_version: str = Field(default="2.6.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="HTTP server host")
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("HTML2IMAGE_PORT", "PORT", "port"),
        description="HTTP server port",
    )
    transports: Annotated[List[str], NoDecode] = Field(
        default=["stdio", "http"], description="Enabled transports: stdio, http"
    )

    # Storage Configuration
    images_dir: Path = Field(default=Path("./images"), description="Rendered images directory")
    images_url_prefix: str = Field(default="/images", description="URL prefix for saved images")

    # Rendering Configuration
    navigation_timeout_ms: int = Field(
        default=30000, description="Content load deadline in milliseconds"
    )
    selector_timeout_ms: int = Field(
        default=10000, description="Selector wait deadline in milliseconds"
    )
    max_wait_ms: int = Field(
        default=60000, gt=0, le=60000, description="Longest accepted duration wait in milliseconds"
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    browser_args: Annotated[List[str], NoDecode] = Field(
        default=["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"],
        description="Chromium launch arguments",
    )

    # SSE Configuration
    sse_enabled: bool = Field(default=True, description="Enable Server-Sent Events")
    sse_heartbeat_interval: float = Field(
        default=15.0, description="SSE keepalive interval in seconds"
    )
    sse_event_buffer_size: int = Field(
        default=100, description="SSE event buffer size per connection"
    )

    # Security Configuration
    allowed_hosts: Annotated[List[str], NoDecode] = Field(
        default=["*"], description="Allowed origins for CORS"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Optional rotating log file")

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

    @field_validator("allowed_hosts", "transports", "browser_args", mode="before")
    @classmethod
    def parse_list(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse list values from a JSON array or comma-separated string."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("transports")
    @classmethod
    def validate_transports(cls, v: List[str]) -> List[str]:
        """Validate transport names."""
        allowed = {"stdio", "http"}
        unknown = set(v) - allowed
        if unknown:
            raise ValueError(f"Unknown transports {sorted(unknown)}; allowed: {allowed}")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="HTML2IMAGE_",
        populate_by_name=True,
        extra="ignore",
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
