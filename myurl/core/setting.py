"""
Configuration Settings

This module defines the frontend configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- The backend API is an external collaborator, only its base URL lives here
- Countdown length is configuration, individual call sites may override it
- Defaults to SQLite (file-based) for the authentication session store
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "settings"]


class EnvSettingsOptions(Enum):
    """Environment options for deployment."""
    production = "production"
    staging = "staging"
    development = "dev"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        # RESOLVE_TIMEOUT_SECONDS=None disables the resolution bound
        env_parse_none_str="None"
    )

    # Project Configuration
    ENV_SETTING: EnvSettingsOptions = Field(
        default=EnvSettingsOptions.development,
        description="Environment setting (production, staging, dev)"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level for the application"
    )

    # Session store database
    # For SQLite: sqlite+aiosqlite:///./myurl_sessions.db (default)
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./myurl_sessions.db",
        description="Database connection string for persisted authentication sessions"
    )

    # External services
    API_URL: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the link backend API"
    )
    FRONTEND_URL: str = Field(
        default="http://localhost:3001",
        description="Public URL of this frontend (canonical links, home page)"
    )
    SITE_NAME: str = Field(
        default="MyUrl.life",
        description="Brand name used in preview page titles"
    )
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Default timeout for backend API calls"
    )

    # Redirect flow
    COUNTDOWN_SECONDS: int = Field(
        default=5,
        ge=1,
        description="Seconds shown on the redirect countdown before navigating"
    )
    MAX_COUNTDOWN_SECONDS: int = Field(
        default=60,
        ge=1,
        description="Largest countdown a caller may request"
    )
    RESOLVE_TIMEOUT_SECONDS: Optional[float] = Field(
        default=15.0,
        description="Upper bound on link resolution (None waits for the transport)"
    )
    METADATA_TIMEOUT_SECONDS: float = Field(
        default=3.0,
        description="Upper bound on preview metadata enrichment"
    )
    MAX_REDIRECT_SESSIONS: int = Field(
        default=1000,
        description="Maximum number of live redirect sessions kept in memory"
    )
    REDIRECT_SESSION_RETENTION_SECONDS: float = Field(
        default=300.0,
        description="How long finished redirect sessions stay readable"
    )

    # Authentication sessions
    AUTH_SESSION_TTL_SECONDS: int = Field(
        default=24 * 60 * 60,
        description="Lifetime of a login session"
    )
    SESSION_COOKIE_NAME: str = Field(
        default="myurl_session",
        description="Cookie carrying the session id"
    )


settings = Settings()
