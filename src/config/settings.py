"""Configuration settings for the web clipper with caching utilities."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from threading import RLock
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Clipper application settings"""

    model_config = SettingsConfigDict(
        env_file=[".env.test", ".env"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"
    log_dir: Path | None = Path("logs")

    # Environment
    environment: str = "personal"

    # Selector resolution (round trip to the live page)
    selector_timeout_seconds: float = Field(default=5.0, gt=0)

    # Page fetching
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    http_connect_timeout_seconds: float = Field(default=10.0, gt=0)
    http_user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    max_page_bytes: int = 2_000_000

    # Obsidian
    obsidian_vault: str = ""
    silent_open: bool = False

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment.lower() in ["development", "dev"]

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode"""
        return self.environment.lower() in ["testing", "test"]


_SETTINGS_LOCK = RLock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, refresh: bool = False) -> Settings:
    """Return a cached ``Settings`` instance.

    Parameters
    ----------
    refresh:
        When ``True`` the cached instance is discarded and a new one is created.
    """

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        if refresh or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    """Clear the cached settings instance."""

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


get_settings.cache_clear = clear_settings_cache  # type: ignore[attr-defined]


@contextmanager
def override_settings(**overrides: Any) -> Iterator[Settings]:
    """Temporarily override the cached settings within a context."""

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        previous_settings = _SETTINGS_CACHE

    base_settings = previous_settings or Settings()
    patched_settings = base_settings.model_copy(update=overrides)

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = patched_settings

    try:
        yield patched_settings
    finally:
        with _SETTINGS_LOCK:
            _SETTINGS_CACHE = previous_settings
