"""Command-line interface for the API console."""

from apiconsole.cli.main import app

__all__ = ["app"]
