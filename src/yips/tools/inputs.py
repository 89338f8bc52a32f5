"""Argument models for the built-in tools."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

MAX_COMMAND_TIMEOUT_MS = 120_000


def clamp_positive_int(value: Any, fallback: int, maximum: int) -> int:
    """Keep positive integers up to ``maximum``; anything else becomes ``fallback``."""
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return min(value, maximum)
    return fallback


class _ToolInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ReadFileInput(_ToolInput):
    """Read a text file."""

    path: NonEmptyStr = Field(..., description="Path to the file")
    max_bytes: int = Field(default=200_000, alias="maxBytes", description="Maximum characters returned")

    @field_validator("max_bytes", mode="before")
    @classmethod
    def _clamp_max_bytes(cls, value: Any) -> int:
        return clamp_positive_int(value, 200_000, 500_000)


class ListDirInput(_ToolInput):
    """List one directory."""

    path: str = Field(default=".", description="Directory path")


class GrepInput(_ToolInput):
    """Search for a regex pattern in files."""

    pattern: NonEmptyStr = Field(..., description="Regex pattern")
    path: str = Field(default=".", description="Base path")
    max_matches: int = Field(default=200, alias="maxMatches", description="Maximum matching lines")

    @field_validator("max_matches", mode="before")
    @classmethod
    def _clamp_max_matches(cls, value: Any) -> int:
        return clamp_positive_int(value, 200, 2_000)


class RunCommandInput(_ToolInput):
    """Run a shell command."""

    command: NonEmptyStr = Field(..., description="Shell command to run")
    cwd: str = Field(default=".", description="Working directory")
    timeout_ms: int = Field(default=60_000, alias="timeoutMs", description="Timeout in milliseconds")

    @field_validator("timeout_ms", mode="before")
    @classmethod
    def _clamp_timeout(cls, value: Any) -> int:
        return clamp_positive_int(value, 60_000, MAX_COMMAND_TIMEOUT_MS)


class PreviewWriteInput(_ToolInput):
    """Stage a full-file overwrite."""

    path: NonEmptyStr = Field(..., description="Path to the file")
    content: str = Field(..., description="New file contents")


class PreviewEditInput(_ToolInput):
    """Stage a text substitution."""

    path: NonEmptyStr = Field(..., description="Path to the file")
    old_text: str = Field(..., alias="oldText", min_length=1, description="Text to replace")
    new_text: str = Field(..., alias="newText", description="Replacement text")
    replace_all: bool = Field(default=False, alias="replaceAll", description="Replace all occurrences")


class ApplyChangeInput(_ToolInput):
    """Commit a staged change."""

    token: NonEmptyStr = Field(..., description="Token returned by a preview tool")
