"""Test configuration module"""

from pathlib import Path

import pytest
from pydantic import ValidationError


def test_config_import(monkeypatch) -> None:
    """設定が環境変数から正しく構築されることを検証する。"""
    # conftest の autouse フィクスチャで既に設定済みだが、ここでは明示上書き
    monkeypatch.setenv("OBSIDIAN_VAULT", "Research")
    monkeypatch.setenv("SELECTOR_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("SILENT_OPEN", "true")
    monkeypatch.setenv("LOG_DIR", "/tmp/clipper-logs")

    # Import get_settings AFTER setting environment variables
    from src.config import get_settings

    settings = get_settings()

    assert settings.obsidian_vault == "Research"
    assert settings.selector_timeout_seconds == 2.5
    assert settings.silent_open is True
    assert settings.log_dir == Path("/tmp/clipper-logs")
    assert settings.environment == "testing"
    assert settings.is_testing
    assert not settings.is_development


def test_settings_are_cached(monkeypatch) -> None:
    from src.config import clear_settings_cache, get_settings

    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("OBSIDIAN_VAULT", "Changed")
    assert get_settings().obsidian_vault == ""
    assert get_settings(refresh=True).obsidian_vault == "Changed"

    clear_settings_cache()
    assert get_settings() is not first


def test_override_settings_restores_previous() -> None:
    from src.config import get_settings, override_settings

    original = get_settings()
    with override_settings(obsidian_vault="Temporary") as patched:
        assert get_settings() is patched
        assert patched.obsidian_vault == "Temporary"
    assert get_settings() is original


def test_selector_timeout_must_be_positive(monkeypatch) -> None:
    from src.config import Settings

    monkeypatch.setenv("SELECTOR_TIMEOUT_SECONDS", "0")
    with pytest.raises(ValidationError):
        Settings()
