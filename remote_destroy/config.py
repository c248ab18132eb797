"""Configuration settings for remote_destroy.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from remote_destroy.types import ClusterSession


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the OKTETO_ prefix,
    so OKTETO_ACTION_NAME, OKTETO_GIT_COMMIT and OKTETO_REMOTE_CLI_IMAGE
    map directly onto fields. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="OKTETO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Cluster session
    context: str = Field(
        default="",
        description="Okteto context URL (e.g. https://okteto.example.com)",
    )
    namespace: str = Field(
        default="",
        description="Namespace of the active context",
    )
    token: str = Field(
        default="",
        description="Access token for the active context",
    )

    # Values forwarded into the destroy image
    action_name: str = Field(
        default="",
        description="Pipeline action name forwarded to the remote destroy",
    )
    git_commit: str = Field(
        default="",
        description="Git commit forwarded to the remote destroy",
    )
    cli_version: str = Field(
        default="",
        description="okteto CLI release to run the destroy with (empty: development)",
    )
    remote_cli_image: str = Field(
        default="",
        description="CLI image used when this build has no released version",
    )

    # Paths
    tmp_dir: Path | None = Field(
        default=None,
        description="Root for ephemeral build contexts (system default if not set)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    request_timeout: int = Field(
        default=30,
        ge=1,
        description="Timeout for cluster API requests",
    )
    build_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for the remote destroy build",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def session_from_settings(settings: Settings) -> ClusterSession:
    """Build the explicit cluster session from settings."""
    return ClusterSession(
        context=settings.context,
        namespace=settings.namespace,
        token=settings.token,
    )


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The access token is redacted.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    redacted = settings.model_copy(
        update={"token": "***" if settings.token else ""}
    )
    return redacted.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json", "session_from_settings"]
