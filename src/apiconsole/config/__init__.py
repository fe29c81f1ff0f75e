"""
Configuration module for the API console.

Layered configuration loading (CLI > env > user > project > defaults)
validated with pydantic models.
"""

from apiconsole.config.defaults import (
    DEFAULT_CONFIG,
    ENV_PREFIX,
    PROJECT_CONFIG_FILENAME,
    USER_CONFIG_PATH,
)
from apiconsole.config.settings import (
    ApiSettings,
    ConfigService,
    GeneralSettings,
    MakeSettings,
    PollerSettings,
    Settings,
    UISettings,
    config_service,
    get_settings,
    parse_scalar,
    reload_settings,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "PROJECT_CONFIG_FILENAME",
    "USER_CONFIG_PATH",
    "ApiSettings",
    "ConfigService",
    "GeneralSettings",
    "MakeSettings",
    "PollerSettings",
    "Settings",
    "UISettings",
    "config_service",
    "get_settings",
    "parse_scalar",
    "reload_settings",
]
