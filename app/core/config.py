"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.

The remote service (hosted Supabase-style backend) is optional. When
SUPABASE_URL or SUPABASE_ANON_KEY is missing the application runs in
offline mode, backed entirely by the local mirror in DATA_DIRECTORY.

Usage:
    from app.core.config import get_settings

    settings = get_settings()
    if settings.remote_configured:
        # Prefer the remote service
    else:
        # Offline mode

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing, remote service optional
        PRODUCTION: Live environment, remote service expected
        STAGING: Pre-production testing against a staging project
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class RemoteBackend(str, Enum):
    """Which remote service implementation the factory builds."""
    SUPABASE = "supabase"
    MOCK = "mock"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    The anon key should NEVER be committed to version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Warung Ordering",
        description="Application display name"
    )
    app_version: str = Field(
        default="4.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )

    # ==========================================================================
    # REMOTE SERVICE (SUPABASE)
    # ==========================================================================

    supabase_url: Optional[str] = Field(
        default=None,
        description="Remote service endpoint (https://<project>.supabase.co)"
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        description="Remote service access key"
    )
    remote_backend: RemoteBackend = Field(
        default=RemoteBackend.SUPABASE,
        description="Remote implementation: supabase or mock"
    )
    mock_remote_failure_rate: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Simulated failure probability for the mock remote"
    )
    menu_image_bucket: str = Field(
        default="menu-images",
        description="Object storage bucket for menu images"
    )
    realtime_heartbeat_seconds: float = Field(
        default=30.0,
        description="Heartbeat interval on the realtime websocket"
    )
    realtime_reconnect_seconds: float = Field(
        default=5.0,
        description="Delay before reopening a dropped realtime channel"
    )

    # ==========================================================================
    # LOCAL MIRROR
    # ==========================================================================

    data_directory: str = Field(
        default="data",
        description="Directory holding the local mirror entries"
    )
    storage_lock_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for a local entry lock"
    )

    # ==========================================================================
    # ADMIN
    # ==========================================================================

    admin_password: str = Field(
        default="admin123",
        description="Password for the admin dashboard"
    )
    admin_session_hours: int = Field(
        default=24,
        description="Admin session lifetime in hours"
    )
    session_secret: str = Field(
        default="change-me-session-secret",
        description="Key signing the client session cookie"
    )
    session_cookie: str = Field(
        default="warung_session",
        description="Name of the client session cookie"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Empty strings count as unset; trailing slashes are dropped."""
        if v is None:
            return None
        v = str(v).strip().rstrip("/")
        return v or None

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def is_staging(self) -> bool:
        """Check if running in staging mode."""
        return self.env_mode == EnvironmentMode.STAGING

    @property
    def remote_configured(self) -> bool:
        """Both an endpoint and a credential are present."""
        return bool(self.supabase_url and self.supabase_anon_key)

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if not self.is_development:
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_anon_key:
                missing.append("SUPABASE_ANON_KEY")
            if self.admin_password == "admin123":
                missing.append("ADMIN_PASSWORD")
            if self.session_secret == "change-me-session-secret":
                missing.append("SESSION_SECRET")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are loaded only once.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)

    return logging.getLogger("app")
