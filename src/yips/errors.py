"""Application-level exception types for yips."""

from __future__ import annotations


class YipsError(Exception):
    """Base exception for yips."""


class ConfigurationError(YipsError):
    """Base exception for configuration and startup validation errors."""


class WorkspaceNotFoundError(ConfigurationError):
    """Raised when the configured workspace path does not exist."""


class InvalidSettingError(ConfigurationError):
    """Raised when a numeric limit is out of range."""
