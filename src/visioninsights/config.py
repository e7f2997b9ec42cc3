"""Configuration loader for visioninsights."""

from __future__ import annotations

import warnings
from dataclasses import dataclass, fields
from functools import lru_cache
from pathlib import Path
from typing import Any

import tomllib

from visioninsights.exceptions import ConfigError

DEFAULT_COMPLETION_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
DEFAULT_OUTPUT_KEY = "google_gemini"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class AnalysisSettings:
    """Batching and retry policy for frame analysis."""

    batch_size: int = 2
    max_retries: int = 3
    retry_delay_ms: int = 2000
    batch_delay_ms: int = 1000
    keep_partial_results: bool = False

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.max_retries < 1:
            raise ConfigError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.retry_delay_ms < 0 or self.batch_delay_ms < 0:
            raise ConfigError("retry_delay_ms and batch_delay_ms must be non-negative")


@dataclass(frozen=True)
class VisionSettings:
    """Endpoint settings for the per-frame vision analyzer."""

    api_url: str | None = None
    output_key: str = DEFAULT_OUTPUT_KEY
    timeout: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class CompletionSettings:
    """Endpoint settings for the text-completion model."""

    api_url: str = DEFAULT_COMPLETION_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class Settings:
    analysis: AnalysisSettings = AnalysisSettings()
    vision: VisionSettings = VisionSettings()
    completion: CompletionSettings = CompletionSettings()


# Searched in order; the first existing file wins even if it lacks a visioninsights table
CONFIG_FILES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("visioninsights.toml", ()),
    ("pyproject.toml", ("tool", "visioninsights")),
)


def _read_config_file(directory: Path) -> dict[str, Any]:
    """Return the visioninsights table of the first config file in ``directory``.

    Unreadable or malformed files produce a RuntimeWarning and an empty table.
    """
    for filename, table_keys in CONFIG_FILES:
        path = directory / filename
        if not path.is_file():
            continue

        try:
            with open(path, "rb") as f:
                table: Any = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            warnings.warn(f"Invalid TOML in config file {path}: {e}", RuntimeWarning)
            return {}
        except OSError as e:
            warnings.warn(f"Cannot read config file {path}: {e}", RuntimeWarning)
            return {}

        for key in table_keys:
            table = table.get(key, {}) if isinstance(table, dict) else {}
        return table if isinstance(table, dict) else {}
    return {}


@lru_cache(maxsize=1)
def _get_cached_config() -> dict[str, Any]:
    return _read_config_file(Path.cwd())


def get_config() -> dict[str, Any]:
    """Return the raw visioninsights table of the working directory's config file, cached."""
    return _get_cached_config()


def _section(cls: type, data: Any, name: str) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"[{name}] must be a table, got {type(data).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        warnings.warn(f"Ignoring unknown keys in [{name}]: {', '.join(sorted(unknown))}", RuntimeWarning)

    try:
        return cls(**{k: v for k, v in data.items() if k in known})
    except TypeError as e:
        raise ConfigError(f"Invalid [{name}] section: {e}") from e


def settings_from_dict(data: dict[str, Any]) -> Settings:
    """Build Settings from a configuration mapping.

    Raises:
        ConfigError: If a section is malformed or holds invalid values.
    """
    return Settings(
        analysis=_section(AnalysisSettings, data.get("analysis"), "analysis"),
        vision=_section(VisionSettings, data.get("vision"), "vision"),
        completion=_section(CompletionSettings, data.get("completion"), "completion"),
    )


def get_settings() -> Settings:
    """Get typed settings from the config file, falling back to defaults."""
    return settings_from_dict(get_config())


def clear_config_cache() -> None:
    """Clear the configuration cache. Useful for testing."""
    _get_cached_config.cache_clear()
