"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (BIFROST__CACHE__TTL_MINUTES=10)
  2. bifrost.yaml           (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_BASE_URL = "https://psychonautwiki.org/w/api.php"
DEFAULT_USER_AGENT = "Bifrost"


def _find_config_file() -> str | None:
    """Return the path of the first bifrost.yaml found, or None."""
    candidates = [
        Path("bifrost.yaml"),
        Path(platformdirs.user_config_dir("bifrost")) / "bifrost.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class UpstreamSettings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_connections: int = Field(default=10, ge=1)
    max_keepalive_connections: int = Field(default=5, ge=0)


class CacheSettings(BaseModel):
    ttl_minutes: float = Field(default=30, gt=0)
    # Upper bound on a single background refresh; expiry clears the refresh flag.
    refresh_timeout_seconds: float | None = Field(default=60.0, gt=0)
    # 0 disables the cooldown: the next stale read after a failure retries at once.
    refresh_failure_cooldown_seconds: float = Field(default=0.0, ge=0)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: BIFROST__UPSTREAM__TIMEOUT_SECONDS=5
        env_prefix="BIFROST__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    upstream: UpstreamSettings = UpstreamSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
