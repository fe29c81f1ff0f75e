"""Textual front end for the API console."""

from apiconsole.tui.app import ApiConsoleApp, TaskResult, launch
from apiconsole.tui.modals import StatsModal

__all__ = ["ApiConsoleApp", "StatsModal", "TaskResult", "launch"]
