"""Screen router: the console's state machine and single mutation point.

Keys, poll ticks and task results all arrive here one at a time. Each
handler mutates ``ApplicationState`` and returns the tasks (if any) the
caller should hand to the dispatcher. Nothing in this module performs I/O
except reading the Makefile when the build-command screen is opened.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from transitions import Machine

from apiconsole.core.catalog import Endpoint, EndpointCatalog
from apiconsole.core.errors import MakefileError
from apiconsole.core.events import (
    ConsoleEvent,
    ReferenceListsUpdated,
    RequestCompleted,
    RequestFailed,
    ShellCompleted,
    StatsFetched,
)
from apiconsole.core.inputs import build_input_list, fresh_state, snapshot
from apiconsole.core.make_commands import load_make_commands
from apiconsole.core.request import RequestResult, prepare_request
from apiconsole.core.state import SETTINGS_FIELDS, ApplicationState, Screen
from apiconsole.core.tasks import (
    ExecuteRequest,
    FetchChains,
    FetchStats,
    FetchTemplates,
    RunMakeCommand,
    Task,
)
from apiconsole.utils.logging import get_logger

EL = Screen.ENDPOINT_LIST.value
RB = Screen.REQUEST_BUILDER.value
HISTORY = Screen.HISTORY.value
SETTINGS = Screen.SETTINGS.value
MAKE = Screen.MAKE_COMMANDS.value
MODAL = Screen.STATS_MODAL.value

NON_MODAL = [EL, RB, HISTORY, SETTINGS, MAKE]


class _ReturnsTo:
    """Condition for ``dismiss_stats``: the overlay returns to ``screen``."""

    def __init__(self, screen: str):
        self.screen = screen

    def __call__(self, previous: Screen | None = None, **_: Any) -> bool:
        return previous is not None and previous.value == self.screen


TRANSITIONS: list[dict[str, Any]] = [
    {"trigger": "goto_endpoints", "source": NON_MODAL, "dest": EL},
    {
        "trigger": "goto_make_commands",
        "source": NON_MODAL,
        "dest": MAKE,
        "after": "_refresh_make_commands",
    },
    {"trigger": "goto_history", "source": NON_MODAL, "dest": HISTORY},
    {
        "trigger": "goto_settings",
        "source": NON_MODAL,
        "dest": SETTINGS,
        "after": "_reset_settings_form",
    },
    {"trigger": "focus_fields", "source": EL, "dest": RB},
    {"trigger": "focus_list", "source": RB, "dest": EL},
    {"trigger": "back", "source": [RB, HISTORY, SETTINGS], "dest": EL},
    {
        "trigger": "show_stats",
        "source": NON_MODAL,
        "dest": MODAL,
        "before": "_remember_previous",
    },
    *[
        {
            "trigger": "dismiss_stats",
            "source": MODAL,
            "dest": screen,
            "conditions": _ReturnsTo(screen),
            "after": "_forget_previous",
        }
        for screen in NON_MODAL
    ],
    # No valid previous screen: fall back to the endpoint list.
    {"trigger": "dismiss_stats", "source": MODAL, "dest": EL, "after": "_forget_previous"},
]

GLOBAL_KEYS = {"f1", "f2", "f3", "f4", "f5"}
LETTER_SHORTCUTS = {"d": "f3", "h": "f4", "s": "f5"}


def _printable(character: str | None) -> str | None:
    if character and len(character) == 1 and character.isprintable():
        return character
    return None


class ScreenRouter:
    """Finite state machine over ``Screen`` plus the handlers that drive it.

    Parameters
    ----------
    catalog : EndpointCatalog | None
        Endpoints to browse. Defaults to the built-in catalog.
    state : ApplicationState | None
        State record to own. A fresh one is created when omitted.
    makefile : Path | None
        Build-command file listed on the make-commands screen.
    """

    def __init__(
        self,
        catalog: EndpointCatalog | None = None,
        state: ApplicationState | None = None,
        *,
        makefile: Path | None = None,
        make_executable: str = "make",
        history_window: int = 10,
        search_enabled: bool = True,
    ):
        self.catalog = catalog or EndpointCatalog()
        self.app_state = state or ApplicationState()
        self.makefile = makefile
        self.make_executable = make_executable
        self.history_window = history_window
        self.search_enabled = search_enabled
        self.logger = get_logger("router")

        self._machine = Machine(
            model=self,
            states=[screen.value for screen in Screen],
            transitions=TRANSITIONS,
            initial=self.app_state.current_screen.value,
            auto_transitions=False,
            ignore_invalid_triggers=True,
            after_state_change="_sync_screen",
            send_event=False,
        )

    # ==================== STATE MACHINE HOOKS ====================

    @property
    def screen(self) -> Screen:
        return Screen(self.state)

    def _sync_screen(self, *args: Any, **kwargs: Any) -> None:
        self.app_state.current_screen = self.screen
        self.logger.debug("router.screen_changed", screen=self.state)

    def _remember_previous(self, *args: Any, **kwargs: Any) -> None:
        self.app_state.previous_screen = self.screen
        self.app_state.stats.loading = True
        self.app_state.stats.error = None

    def _forget_previous(self, *args: Any, **kwargs: Any) -> None:
        self.app_state.previous_screen = None

    def _reset_settings_form(self, *args: Any, **kwargs: Any) -> None:
        form = self.app_state.settings
        form.values = {"base_url": self.app_state.base_url, "user_id": self.app_state.user_id}
        form.focused = 0
        form.message = None
        form.error = False

    def _refresh_make_commands(self, *args: Any, **kwargs: Any) -> None:
        self.load_make_commands()

    # ==================== LIFECYCLE ====================

    @property
    def selected_endpoint(self) -> Endpoint:
        return self.catalog[self.app_state.selected_index]

    def initialize(self) -> None:
        """Preselect the first endpoint. Issues no network call."""
        if len(self.catalog):
            self.select_endpoint(0)
        self.logger.info("router.initialized", endpoints=len(self.catalog))

    def load_make_commands(self) -> None:
        make = self.app_state.make
        if self.makefile is None:
            make.commands = []
            make.load_error = "No Makefile configured"
            return
        try:
            make.commands = load_make_commands(self.makefile)
            make.load_error = None
        except MakefileError as exc:
            self.logger.warning("router.makefile_unreadable", path=exc.path, reason=exc.reason)
            make.commands = []
            make.load_error = str(exc)
        make.cursor = min(make.cursor, max(len(make.commands) - 1, 0))

    # ==================== SELECTION PIPELINE ====================

    def select_endpoint(self, index: int) -> bool:
        """Save the outgoing endpoint's inputs and load the incoming one's.

        Returns False (and changes nothing) for an out-of-range index.
        """
        if not 0 <= index < len(self.catalog):
            return False
        state = self.app_state
        if state.selected_name:
            state.endpoint_states.save(
                state.selected_name,
                snapshot(state.ordered_input_list, state.last_response),
            )

        endpoint = self.catalog[index]
        inputs = state.endpoint_states.restore(endpoint.name)
        if inputs is None:
            inputs = fresh_state(endpoint, state.reference)

        state.selected_index = index
        state.selected_name = endpoint.name
        state.ordered_input_list = build_input_list(endpoint, inputs)
        state.last_response = inputs.last_response
        state.focused_input_index = 0
        return True

    def move_selection(self, step: int) -> bool:
        index = self.app_state.selected_index + step
        if not 0 <= index < len(self.catalog):
            return False
        return self.select_endpoint(index)

    def search(self, buffer: str) -> bool:
        """Jump to the first entry matching ``buffer``; no match moves nothing."""
        index = self.catalog.search(buffer)
        if index is None:
            return False
        if index != self.app_state.selected_index:
            self.select_endpoint(index)
        return True

    # ==================== COMMAND BUILDERS ====================

    def send_request(self) -> list[Task]:
        state = self.app_state
        endpoint = self.selected_endpoint
        values = snapshot(state.ordered_input_list)
        prepared = prepare_request(
            endpoint,
            values.path_values,
            values.query_values,
            values.body_values,
            base_url=state.base_url,
            user_id=state.user_id,
            user_header=state.user_header,
        )
        state.pending_requests += 1
        state.last_error = None
        self.logger.info("router.request_dispatched", endpoint=endpoint.name, url=prepared.url)
        return [ExecuteRequest(prepared, timeout=state.request_timeout)]

    def reference_fetches(self) -> list[Task]:
        state = self.app_state
        return [
            FetchChains(state.base_url, state.user_id, state.user_header),
            FetchTemplates(state.base_url),
        ]

    def handle_tick(self) -> list[Task]:
        """Poll tick: refresh both reference lists."""
        return self.reference_fetches()

    def open_stats(self) -> list[Task]:
        if not self.show_stats():
            return []
        state = self.app_state
        return [FetchStats(state.base_url, state.user_id, state.user_header)]

    def run_selected_make_command(self) -> list[Task]:
        make = self.app_state.make
        command = make.selected
        if command is None:
            return []
        make.running = command.name
        make.output = ""
        make.last_exit_code = None
        cwd = self.makefile.parent if self.makefile is not None else None
        return [RunMakeCommand(command.name, cwd=cwd, executable=self.make_executable)]

    def apply_settings(self) -> bool:
        form = self.app_state.settings
        base_url = form.values.get("base_url", "").strip().rstrip("/")
        user_id = form.values.get("user_id", "").strip()
        if not base_url.startswith(("http://", "https://")):
            form.message = "Base URL must start with http:// or https://"
            form.error = True
            return False
        self.app_state.base_url = base_url
        self.app_state.user_id = user_id
        form.values["base_url"] = base_url
        form.message = "Settings applied"
        form.error = False
        self.logger.info("router.settings_applied", base_url=base_url)
        return True

    def request_quit(self) -> None:
        self.app_state.quit_requested = True
        self.logger.info("router.quit_requested", screen=self.state)

    # ==================== KEY HANDLING ====================

    def handle_key(self, key: str, character: str | None = None) -> list[Task]:
        """Route one key press and return the tasks it started."""
        if self.screen.is_modal:
            self.dismiss_stats(previous=self.app_state.previous_screen)
            return []
        if key == "ctrl+c":
            self.request_quit()
            return []
        if key in GLOBAL_KEYS:
            return self._global_key(key)

        char = _printable(character)
        if char is not None and not self.app_state.accepts_text and char in LETTER_SHORTCUTS:
            return self._global_key(LETTER_SHORTCUTS[char])

        handler = {
            Screen.ENDPOINT_LIST: self._endpoint_list_key,
            Screen.REQUEST_BUILDER: self._request_builder_key,
            Screen.HISTORY: self._history_key,
            Screen.SETTINGS: self._settings_key,
            Screen.MAKE_COMMANDS: self._make_commands_key,
        }[self.screen]
        return handler(key, char)

    def _global_key(self, key: str) -> list[Task]:
        self._leave_search()
        if key == "f1":
            self.goto_endpoints()
        elif key == "f2":
            self.goto_make_commands()
        elif key == "f3":
            return self.open_stats()
        elif key == "f4":
            self.app_state.history_cursor = 0
            self.goto_history()
        elif key == "f5":
            self.goto_settings()
        return []

    def _go_back(self) -> None:
        if not self.back():
            self.request_quit()

    def _enter_search(self) -> None:
        self.app_state.search_mode = True
        self.app_state.search_buffer = ""

    def _leave_search(self) -> None:
        self.app_state.search_mode = False
        self.app_state.search_buffer = ""

    def _endpoint_list_key(self, key: str, char: str | None) -> list[Task]:
        state = self.app_state
        if state.search_mode:
            return self._search_key(key, char)
        if key in ("up", "ctrl+p") or char == "k":
            self.move_selection(-1)
        elif key in ("down", "ctrl+n") or char == "j":
            self.move_selection(1)
        elif key == "tab":
            self.focus_fields()
            state.focused_input_index = 0
        elif key == "shift+tab":
            self.focus_fields()
            state.focused_input_index = state.send_control_index
        elif key == "enter":
            return self.send_request()
        elif key == "escape" or char == "q":
            self._go_back()
        elif char == "/" and self.search_enabled:
            self._enter_search()
        return []

    def _search_key(self, key: str, char: str | None) -> list[Task]:
        state = self.app_state
        if key in ("enter", "escape"):
            self._leave_search()
        elif key == "backspace":
            if state.search_buffer:
                state.search_buffer = state.search_buffer[:-1]
                if state.search_buffer:
                    self.search(state.search_buffer)
        elif char is not None:
            state.search_buffer += char
            self.search(state.search_buffer)
        return []

    def _request_builder_key(self, key: str, char: str | None) -> list[Task]:
        state = self.app_state
        field = state.focused_field
        if key == "tab":
            self._move_focus(1)
        elif key == "shift+tab":
            self._move_focus(-1)
        elif key == "down":
            state.focused_input_index = min(state.focused_input_index + 1, state.send_control_index)
        elif key == "up":
            state.focused_input_index = max(state.focused_input_index - 1, 0)
        elif key == "ctrl+n":
            self.move_selection(1)
        elif key == "ctrl+p":
            self.move_selection(-1)
        elif key == "enter":
            return self.send_request()
        elif key == "escape":
            self._go_back()
        elif key == "backspace":
            if field is not None:
                field.backspace()
        elif key == "ctrl+u":
            if field is not None:
                field.clear()
        elif char is not None:
            if field is not None:
                field.type_text(char)
            elif char == "q":
                self._go_back()
        return []

    def _move_focus(self, step: int) -> None:
        """Cycle fields and the send control; past either end, back to the list."""
        state = self.app_state
        index = state.focused_input_index + step
        if index < 0 or index > state.send_control_index:
            self.focus_list()
            return
        state.focused_input_index = index

    def _history_key(self, key: str, char: str | None) -> list[Task]:
        state = self.app_state
        shown = min(len(state.history), self.history_window)
        if key == "up" or char == "k":
            state.history_cursor = max(state.history_cursor - 1, 0)
        elif key == "down" or char == "j":
            state.history_cursor = min(state.history_cursor + 1, max(shown - 1, 0))
        elif key == "escape" or char == "q":
            self._go_back()
        return []

    def _settings_key(self, key: str, char: str | None) -> list[Task]:
        form = self.app_state.settings
        if key in ("tab", "down"):
            form.move(1)
        elif key in ("shift+tab", "up"):
            form.move(-1)
        elif key == "enter":
            self.apply_settings()
        elif key == "escape":
            self._go_back()
        elif key == "backspace":
            form.backspace()
        elif key == "ctrl+u":
            form.clear()
        elif char is not None:
            form.type_text(char)
        return []

    def _make_commands_key(self, key: str, char: str | None) -> list[Task]:
        make = self.app_state.make
        if key in ("up", "ctrl+p") or char == "k":
            make.cursor = max(make.cursor - 1, 0)
        elif key in ("down", "ctrl+n") or char == "j":
            make.cursor = min(make.cursor + 1, max(len(make.commands) - 1, 0))
        elif key == "enter":
            return self.run_selected_make_command()
        elif key == "escape" or char == "q":
            self._go_back()
        return []

    # ==================== EVENTS ====================

    def apply_event(self, event: ConsoleEvent) -> None:
        """Fold one task result into application state."""
        if isinstance(event, (RequestCompleted, RequestFailed)):
            self._apply_request_result(event.result)
        elif isinstance(event, ShellCompleted):
            make = self.app_state.make
            make.running = None
            make.output = event.output
            make.last_exit_code = event.exit_code
        elif isinstance(event, ReferenceListsUpdated):
            reference = self.app_state.reference
            if event.chains is not None:
                reference.replace_chains(list(event.chains))
            if event.templates is not None:
                reference.replace_templates(list(event.templates))
            for error in event.errors:
                self.logger.debug("router.reference_fetch_failed", error=error)
        elif isinstance(event, StatsFetched):
            stats = self.app_state.stats
            stats.loading = False
            stats.error = event.error
            if event.error is None:
                stats.template_count = event.template_count
                stats.chain_count = event.chain_count
                stats.fetched_at = datetime.now()
            else:
                self.app_state.last_error = event.error
        else:
            self.logger.warning("router.unknown_event", event_type=type(event).__name__)

    def _apply_request_result(self, result: RequestResult) -> None:
        """Record a finished request.

        History always receives it. It is displayed only when it belongs to
        the endpoint currently selected; otherwise it becomes that endpoint's
        saved last response.
        """
        state = self.app_state
        state.pending_requests = max(state.pending_requests - 1, 0)
        state.history.append(result)
        if result.failed:
            state.last_error = result.error

        if result.endpoint_name == state.selected_name:
            state.last_response = result
        elif state.endpoint_states.attach_response(result.endpoint_name, result):
            self.logger.debug("router.stale_result_stored", endpoint=result.endpoint_name)
        else:
            self.logger.debug("router.stale_result_discarded", endpoint=result.endpoint_name)
