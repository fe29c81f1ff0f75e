"""Configuration system for the API console.

Implements layered configuration with the following priority (high → low):
1) CLI overrides (explicit flags)
2) Environment variables (prefix: APICONSOLE_)
3) User config file (~/.apiconsole/config.yaml)
4) Project config file (./apiconsole.yaml)
5) Built-in defaults (fallback)
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from apiconsole.config.defaults import (
    DEFAULT_CONFIG,
    ENV_PREFIX,
    PROJECT_CONFIG_FILENAME,
    USER_CONFIG_PATH,
)


class GeneralSettings(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    verbosity: str = Field(default="info")
    output_format: str = Field(default="text")
    color_enabled: bool = Field(default=True)
    log_file: str = Field(default="")


class ApiSettings(BaseModel):
    # env and `config set` values arrive JSON-parsed, so "42" is an int here.
    model_config = ConfigDict(coerce_numbers_to_str=True)

    base_url: str = Field(default="http://localhost:3001")
    user_id: str = Field(default="")
    user_header: str = Field(default="X-User-ID")
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def _require_http_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return value.rstrip("/")


class PollerSettings(BaseModel):
    enabled: bool = Field(default=True)
    interval_seconds: float = Field(default=30.0, gt=0)


class MakeSettings(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    makefile: str = Field(default="Makefile")
    executable: str = Field(default="make")


class UISettings(BaseModel):
    history_window: int = Field(default=10, ge=1)
    search_enabled: bool = Field(default=True)


class Settings(BaseModel):
    general: GeneralSettings
    api: ApiSettings
    poller: PollerSettings
    make: MakeSettings
    ui: UISettings

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        return cls.model_validate(data)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base, returning a new dict."""

    result = {**base}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - unlikely with safe_load
        raise ValueError(f"Failed to parse YAML config at {path}: {exc}") from exc


def _ensure_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def parse_scalar(value: str) -> Any:
    """Best-effort parsing for CLI/env string values."""

    trimmed = value.strip()
    # Try JSON (covers numbers, booleans, null, quoted strings)
    try:
        return json.loads(trimmed)
    except json.JSONDecodeError:
        pass

    lowered = trimmed.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"none", "null"}:
        return None
    return trimmed


def _set_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    current = target
    for key in path[:-1]:
        current = current.setdefault(key, {})
    current[path[-1]] = value


def _get_nested(data: dict[str, Any], path: list[str]) -> Any:
    current: Any = data
    for key in path:
        if not isinstance(current, dict) or key not in current:
            raise KeyError(".".join(path))
        current = current[key]
    return current


class ConfigService:
    """Loads, merges, and persists console configuration."""

    def __init__(
        self,
        env_prefix: str = ENV_PREFIX,
        project_dir: Path | None = None,
        user_config_path: Path | None = None,
    ):
        self.env_prefix = env_prefix
        self.project_config_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_FILENAME
        self.user_config_path = user_config_path or USER_CONFIG_PATH

    def load(self, cli_overrides: dict[str, Any] | None = None) -> Settings:
        data = DEFAULT_CONFIG

        for path in (self.project_config_path, self.user_config_path):
            data = _deep_merge(data, _load_yaml(path))

        data = _deep_merge(data, self._env_overrides())
        if cli_overrides:
            data = _deep_merge(data, cli_overrides)

        try:
            return Settings.from_dict(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid configuration: {exc}") from exc

    def save(self, settings: Settings, scope: Literal["user", "project"] = "user") -> Path:
        target = self._target(scope)
        _ensure_dir(target)
        with target.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(settings.model_dump(), handle, sort_keys=False)
        return target

    def set_value(
        self, key_path: str, value: Any, scope: Literal["user", "project"] = "user"
    ) -> Path:
        target = self._target(scope)
        current_data = _load_yaml(target)
        parts = self._normalize_key_path(key_path)
        _set_nested(current_data, parts, value)
        _ensure_dir(target)
        with target.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(current_data, handle, sort_keys=False)
        return target

    def get_value(self, key_path: str, cli_overrides: dict[str, Any] | None = None) -> Any:
        data = self.load(cli_overrides=cli_overrides).model_dump()
        parts = self._normalize_key_path(key_path)
        return _get_nested(data, parts)

    def reset(self, scope: Literal["user", "project"] = "user") -> None:
        target = self._target(scope)
        if target.exists():
            target.unlink()

    def _target(self, scope: str) -> Path:
        return self.user_config_path if scope == "user" else self.project_config_path

    def _env_overrides(self) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        prefix = f"{self.env_prefix}_"
        for key, raw_value in os.environ.items():
            if not key.startswith(prefix):
                continue
            path_part = key[len(prefix) :]
            path_segments = self._normalize_env_key(path_part)
            if path_segments:
                _set_nested(overrides, path_segments, parse_scalar(raw_value))
        return overrides

    def _normalize_env_key(self, key: str) -> list[str]:
        if "__" in key:
            segments = key.split("__")
        else:
            # APICONSOLE_API_BASE_URL -> api.base_url
            head, _, rest = key.partition("_")
            segments = [head, rest] if rest else [head]
        return [segment.lower() for segment in segments if segment]

    def _normalize_key_path(self, key_path: str) -> list[str]:
        if not key_path:
            raise ValueError("Key path cannot be empty")
        return [segment.strip() for segment in key_path.split(".") if segment.strip()]


config_service = ConfigService()


_cached_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = config_service.load()
    return _cached_settings


def reload_settings() -> Settings:
    """Reload settings from configuration sources."""
    global _cached_settings
    _cached_settings = config_service.load()
    return _cached_settings
