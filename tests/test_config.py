from __future__ import annotations

from pathlib import Path

import pytest

from yips.config import Settings, get_settings
from yips.errors import ConfigurationError, InvalidSettingError, WorkspaceNotFoundError


def test_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    settings = get_settings()

    assert settings.max_rounds == 6
    assert settings.preview_ttl_seconds == 600.0
    assert settings.preview_max_entries == 50
    assert settings.command_timeout_seconds == 60.0
    assert settings.workspace_path == tmp_path


def test_environment_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("YIPS_MAX_ROUNDS", "3")
    monkeypatch.setenv("YIPS_PREVIEW_TTL_SECONDS", "1.5")

    settings = Settings()

    assert settings.max_rounds == 3
    assert settings.preview_ttl_seconds == 1.5


def test_missing_workspace(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceNotFoundError):
        get_settings(tmp_path / "missing")


def test_non_positive_limit(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("YIPS_MAX_ROUNDS", "0")

    with pytest.raises(InvalidSettingError):
        get_settings(tmp_path)


def test_configuration_errors_share_a_base() -> None:
    assert issubclass(WorkspaceNotFoundError, ConfigurationError)
    assert issubclass(InvalidSettingError, ConfigurationError)


def test_dotenv_file_is_read(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("YIPS_PREVIEW_MAX_ENTRIES=7\nyips_log_level=debug\n")

    settings = Settings()

    assert settings.preview_max_entries == 7
    assert settings.log_level == "debug"
