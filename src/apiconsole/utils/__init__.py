"""
Shared utilities module.
"""

from apiconsole.utils.logging import (
    configure_from_settings,
    configure_logging,
    generate_session_id,
    get_logger,
    set_session_context,
    timed_operation,
)

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "set_session_context",
    "generate_session_id",
    "timed_operation",
]
