"""Application state: the single mutable record the router owns.

Only the router's key and event handlers mutate these objects. Tasks read
nothing from here; whatever they need is copied into the task at dispatch.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from apiconsole.core.inputs import InputField, InputStateCache
from apiconsole.core.make_commands import MakeCommand
from apiconsole.core.reference import ReferenceCache
from apiconsole.core.request import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_HEADER, RequestResult


class Screen(str, Enum):
    """Top-level views. ``STATS_MODAL`` is an overlay."""

    ENDPOINT_LIST = "endpoint_list"
    REQUEST_BUILDER = "request_builder"
    HISTORY = "history"
    SETTINGS = "settings"
    MAKE_COMMANDS = "make_commands"
    STATS_MODAL = "stats_modal"

    @property
    def is_modal(self) -> bool:
        return self is Screen.STATS_MODAL

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").title()


class History:
    """Append-only record of completed requests, in completion order."""

    def __init__(self) -> None:
        self._results: list[RequestResult] = []

    def append(self, result: RequestResult) -> None:
        self._results.append(result)

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[RequestResult]:
        return iter(self._results)

    def __getitem__(self, index: int) -> RequestResult:
        return self._results[index]

    @property
    def latest(self) -> RequestResult | None:
        return self._results[-1] if self._results else None

    def recent(self, limit: int) -> list[RequestResult]:
        """Up to ``limit`` results, newest first. Display only."""
        if limit <= 0:
            return []
        return list(reversed(self._results[-limit:]))


@dataclass
class StatsSnapshot:
    loading: bool = False
    template_count: int = 0
    chain_count: int = 0
    error: str | None = None
    fetched_at: datetime | None = None


@dataclass
class MakeCommandsState:
    commands: list[MakeCommand] = field(default_factory=list)
    cursor: int = 0
    running: str | None = None
    output: str = ""
    last_exit_code: int | None = None
    load_error: str | None = None

    @property
    def selected(self) -> MakeCommand | None:
        if 0 <= self.cursor < len(self.commands):
            return self.commands[self.cursor]
        return None


SETTINGS_FIELDS = ("base_url", "user_id")


@dataclass
class SettingsForm:
    """Editable copies of the session's connection settings."""

    values: dict[str, str] = field(default_factory=dict)
    focused: int = 0
    message: str | None = None
    error: bool = False

    @property
    def focused_name(self) -> str:
        return SETTINGS_FIELDS[self.focused]

    def type_text(self, text: str) -> None:
        name = self.focused_name
        self.values[name] = self.values.get(name, "") + text

    def backspace(self) -> None:
        name = self.focused_name
        self.values[name] = self.values.get(name, "")[:-1]

    def clear(self) -> None:
        self.values[self.focused_name] = ""

    def move(self, step: int) -> None:
        self.focused = (self.focused + step) % len(SETTINGS_FIELDS)


@dataclass
class ApplicationState:
    current_screen: Screen = Screen.ENDPOINT_LIST
    previous_screen: Screen | None = None

    # Endpoint selection and request builder
    selected_index: int = 0
    selected_name: str = ""
    ordered_input_list: list[InputField] = field(default_factory=list)
    focused_input_index: int = 0
    endpoint_states: InputStateCache = field(default_factory=InputStateCache)
    last_response: RequestResult | None = None

    # Search
    search_mode: bool = False
    search_buffer: str = ""

    # Background data
    reference: ReferenceCache = field(default_factory=ReferenceCache)
    stats: StatsSnapshot = field(default_factory=StatsSnapshot)

    # Outbound work
    pending_requests: int = 0
    history: History = field(default_factory=History)
    history_cursor: int = 0
    make: MakeCommandsState = field(default_factory=MakeCommandsState)
    settings: SettingsForm = field(default_factory=SettingsForm)

    # Connection settings captured by each dispatched task
    base_url: str = "http://localhost:3001"
    user_id: str = ""
    user_header: str = DEFAULT_USER_HEADER
    request_timeout: float = DEFAULT_TIMEOUT_SECONDS

    last_error: str | None = None
    quit_requested: bool = False

    @property
    def in_flight(self) -> bool:
        return self.pending_requests > 0

    @property
    def send_control_index(self) -> int:
        """The trailing non-field control sits one past the last field."""
        return len(self.ordered_input_list)

    @property
    def send_focused(self) -> bool:
        return self.focused_input_index == self.send_control_index

    @property
    def focused_field(self) -> InputField | None:
        if 0 <= self.focused_input_index < len(self.ordered_input_list):
            return self.ordered_input_list[self.focused_input_index]
        return None

    @property
    def accepts_text(self) -> bool:
        """True when printable keys are text, not shortcuts."""
        if self.current_screen is Screen.SETTINGS:
            return True
        if self.current_screen is Screen.ENDPOINT_LIST:
            return self.search_mode
        if self.current_screen is Screen.REQUEST_BUILDER:
            return self.focused_field is not None
        return False
