"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional, List, Union
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path


DEFAULT_CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--allow-file-access-from-files",
    "--autoplay-policy=no-user-gesture-required",
]


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Template Render Service", description="Application name")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(
        default=3000,
        description="Server port",
        validation_alias=AliasChoices("PORT", "RENDER_PORT", "port"),
    )
    max_body_bytes: int = Field(default=10 * 1024 * 1024, description="Request body size limit")

    # Template Storage
    data_root: Path = Field(
        default=Path("/data"),
        description="Root directory holding templates and pre-fetched assets",
        validation_alias=AliasChoices("DATA_ROOT", "RENDER_DATA_ROOT", "data_root"),
    )
    templates_dirname: str = Field(default="templates", description="Templates directory name")
    entry_document: str = Field(default="index.html", description="Template entry document")
    temp_path: Optional[Path] = Field(
        default=None, description="Parent directory for per-request temp dirs"
    )

    # Rendering Configuration
    default_width: int = Field(default=2160, description="Default render width")
    default_height: int = Field(default=3840, description="Default render height")
    default_device_scale_factor: float = Field(default=2.0, description="Default pixel ratio")
    ready_timeout_ms: int = Field(default=20000, description="Readiness flag wait in milliseconds")
    ready_poll_interval_ms: int = Field(default=50, description="Readiness poll interval")
    capture_selector: str = Field(default="#frame", description="Element captured to PNG")
    background_layer_selector: str = Field(
        default='[data-layer="background"], [data-render-layer="background"]',
        description="Elements hidden when rendering a video overlay",
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    playwright_timeout: int = Field(default=30000, description="Playwright timeout in milliseconds")
    chromium_args: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CHROMIUM_ARGS), description="Chromium launch flags"
    )

    # Video Composition Configuration
    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg binary")
    default_fps: int = Field(default=30, description="Default output frame rate")
    default_duration_sec: float = Field(default=6.0, description="Default output duration")
    process_timeout_ms: int = Field(default=120000, description="Generic tool run timeout")
    composition_timeout_ms: int = Field(default=180000, description="ffmpeg composition timeout")

    # Security Configuration
    allowed_hosts: List[str] = Field(default=["*"], description="Allowed hosts for CORS")

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

    @field_validator("allowed_hosts", "chromium_args", mode="before")
    @classmethod
    def parse_string_list(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse a list from a JSON array or comma-separated string."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def templates_root(self) -> Path:
        return self.data_root / self.templates_dirname

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="RENDER_",
        populate_by_name=True,
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings
