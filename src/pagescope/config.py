"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PAGESCOPE__FETCHER__TIMEOUT_SECONDS=5)
  2. pagescope.yaml         (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. All fields have sensible defaults.
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

from pagescope import __version__

DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_USER_AGENT = f"pagescope/{__version__} (page analysis agent; honors robots.txt)"


def _find_config_file() -> str | None:
    """Return the path of the first pagescope.yaml found, or None."""
    candidates = [
        Path("pagescope.yaml"),
        Path(platformdirs.user_config_dir("pagescope")) / "pagescope.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080
    auth_enabled: bool = False
    auth_key: str = ""


class FetcherSettings(BaseModel):
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_bytes: int = Field(default=DEFAULT_MAX_BYTES, gt=0)
    max_redirects: int = Field(default=5, ge=0)
    user_agent: str = DEFAULT_USER_AGENT


class RobotsSettings(BaseModel):
    enabled: bool = True
    # Product token matched against robots.txt User-agent lines
    agent_token: str = "pagescope"
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_bytes: int = Field(default=512 * 1024, gt=0)


class GuardSettings(BaseModel):
    resolve_dns: bool = False


class CacheSettings(BaseModel):
    ttl_seconds: float = Field(default=600.0, gt=0)
    max_entries: int = Field(default=256, ge=1)
    cleanup_interval_seconds: float = Field(default=300.0, gt=0)


class RankerSettings(BaseModel):
    max_results: int = Field(default=10, ge=1)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PAGESCOPE__SERVER__PORT=9090
        env_prefix="PAGESCOPE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    fetcher: FetcherSettings = FetcherSettings()
    robots: RobotsSettings = RobotsSettings()
    guard: GuardSettings = GuardSettings()
    cache: CacheSettings = CacheSettings()
    ranker: RankerSettings = RankerSettings()
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
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
        )
