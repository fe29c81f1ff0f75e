"""Interactive terminal console for exploring and exercising a REST API."""

__version__ = "0.1.0"
