"""Configuration management for yips."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidSettingError, WorkspaceNotFoundError


class Settings(BaseSettings):
    """Runtime settings, read from ``YIPS_*`` environment variables or ``.env``."""

    # Turn Configuration
    max_rounds: int = Field(default=6, description="Maximum action rounds per turn")

    # Staging Configuration
    preview_ttl_seconds: float = Field(default=600.0, description="Lifetime of a staged file change")
    preview_max_entries: int = Field(default=50, description="Maximum number of live staged changes")

    # Tool Configuration
    command_timeout_seconds: float = Field(default=60.0, description="Default run_command timeout")
    workspace_path: Path | None = Field(None, description="Session root for tool execution")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")

    model_config = SettingsConfigDict(
        env_prefix="YIPS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )


def get_settings(workspace_path: Path | None = None) -> Settings:
    """Get application settings.

    Args:
        workspace_path: Optional workspace path override

    Returns:
        Settings instance

    Raises:
        WorkspaceNotFoundError: if the resolved workspace does not exist
        InvalidSettingError: if a limit is not positive
    """
    settings = Settings() if workspace_path is None else Settings(workspace_path=workspace_path)
    if settings.workspace_path is None:
        settings.workspace_path = Path.cwd()
    if not settings.workspace_path.is_dir():
        raise WorkspaceNotFoundError(f"workspace not found: {settings.workspace_path}")
    for name in ("max_rounds", "preview_ttl_seconds", "preview_max_entries", "command_timeout_seconds"):
        if getattr(settings, name) <= 0:
            raise InvalidSettingError(f"{name} must be positive")
    return settings
