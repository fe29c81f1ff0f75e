"""Default configuration values and constants for configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Default configuration tree used when no files are present.
DEFAULT_CONFIG: dict[str, Any] = {
    "general": {
        "verbosity": "info",
        "output_format": "text",
        "color_enabled": True,
        "log_file": str(Path.home() / ".apiconsole" / "console.log"),
    },
    "api": {
        "base_url": "http://localhost:3001",
        "user_id": "550e8400-e29b-41d4-a716-446655440000",
        "user_header": "X-User-ID",
        "request_timeout_seconds": 30.0,
    },
    "poller": {
        # Reference lists (chains, templates) are refreshed on this interval
        "enabled": True,
        "interval_seconds": 30.0,
    },
    "make": {
        "makefile": "Makefile",
        "executable": "make",
    },
    "ui": {
        # Number of recent requests shown on the History screen
        "history_window": 10,
        "search_enabled": True,
    },
}

ENV_PREFIX = "APICONSOLE"
PROJECT_CONFIG_FILENAME = "apiconsole.yaml"
USER_CONFIG_PATH = Path.home() / ".apiconsole" / "config.yaml"
