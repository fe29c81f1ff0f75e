"""Exception types raised by the console core."""

from __future__ import annotations


class ConsoleError(Exception):
    """Base class for console errors."""


class CatalogError(ConsoleError, KeyError):
    """Raised when an endpoint name is not in the catalog."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown endpoint: {self.name!r}"


class MakefileError(ConsoleError):
    """Raised when the build-command file cannot be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not read {path}: {reason}")
        self.path = path
        self.reason = reason
