# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ONE_WEEK_MS = 604_800_000


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Settings store (durable key/value) ===
    settings_store_backend: Literal["json", "sqlite", "redis", "memory"] = "json"
    settings_store_root: Path = Path("~/.pageindexer/settings")
    settings_store_redis_url: str = ""

    # === Identity resolution ===
    content_info_max_age_ms: int = ONE_WEEK_MS
    identifier_wait_timeout_ms: int = 2500
    base_locator_url: str = "https://memex.cloud/ct/"

    # === Indexing ===
    title_override_hosts: str = "web.telegram.org/,x.com/,twitter.com/"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("identifier_wait_timeout_ms", "content_info_max_age_ms")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.settings_store_backend == "redis" and not self.settings_store_redis_url:
            errors.append(
                "SETTINGS_STORE_BACKEND=redis requires SETTINGS_STORE_REDIS_URL"
            )

        if not self.base_locator_url.startswith(("http://", "https://")):
            errors.append("BASE_LOCATOR_URL must be an http(s) URL")
        elif not self.base_locator_url.endswith("/"):
            errors.append("BASE_LOCATOR_URL must end with '/'")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def title_override_hosts_list(self) -> list[str]:
        """Parse comma-separated host fragments whose titles come from the page."""
        return [h.strip() for h in self.title_override_hosts.split(",") if h.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
