"""CLI utility functions for configuration overrides and verbosity handling."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
import yaml
from pydantic import ValidationError

from apiconsole.config.settings import Settings, _deep_merge, config_service

_LEVELS = ["critical", "error", "warning", "info", "debug"]


def compute_verbosity(base_level: str, verbose: int, quiet: int) -> str:
    idx = (
        _LEVELS.index(base_level.lower())
        if base_level.lower() in _LEVELS
        else _LEVELS.index("info")
    )
    idx = max(0, min(len(_LEVELS) - 1, idx + verbose - quiet))
    return _LEVELS[idx]


def load_settings_with_cli_overrides(
    *,
    config_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings and apply an optional extra config file and CLI overrides.

    Raises ``ValueError`` when the merged result does not validate.
    """

    base = config_service.load().model_dump()

    if config_path:
        extra = (
            yaml.safe_load(config_path.read_text(encoding="utf-8"))
            if config_path.exists()
            else {}
        )
        if extra:
            base = _deep_merge(base, extra)

    if cli_overrides:
        base = _deep_merge(base, cli_overrides)

    try:
        return Settings.from_dict(base)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def parse_pairs(pairs: list[str] | None, option: str) -> dict[str, str]:
    """Turn repeated ``key=value`` options into a mapping."""
    values: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"expected key=value, got {pair!r}", param_hint=option)
        values[key.strip()] = value
    return values
