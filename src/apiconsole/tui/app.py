"""Main ApiConsoleApp application.

The Textual app is a thin shell around ``ScreenRouter``: every key, poll
tick and task result is handed to the router on the app's own loop, then
the panels are re-rendered from ``ApplicationState``. Tasks run on the
dispatcher's worker threads and come back through ``post_message``.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future
from pathlib import Path

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.message import Message

from apiconsole.config import Settings, get_settings
from apiconsole.core.catalog import EndpointCatalog
from apiconsole.core.dispatcher import ClientFactory, CommandDispatcher
from apiconsole.core.events import ConsoleEvent
from apiconsole.core.poller import BackgroundPoller
from apiconsole.core.router import ScreenRouter
from apiconsole.core.state import ApplicationState, Screen
from apiconsole.core.tasks import Task
from apiconsole.tui.modals import StatsModal
from apiconsole.tui.widgets import (
    EndpointListPanel,
    HistoryPanel,
    MakeCommandsPanel,
    RequestBuilderPanel,
    SettingsPanel,
    StatusBar,
    render_endpoint_list,
    render_history,
    render_make_commands,
    render_request_builder,
    render_settings,
    render_status_bar,
)
from apiconsole.utils.logging import (
    configure_from_settings,
    generate_session_id,
    get_logger,
    set_session_context,
)

# Keys Textual would otherwise claim for focus movement, quitting or scrolling.
ROUTED_KEYS = (
    "tab",
    "shift+tab",
    "enter",
    "escape",
    "up",
    "down",
    "backspace",
    "ctrl+c",
    "ctrl+u",
    "ctrl+n",
    "ctrl+p",
    "f1",
    "f2",
    "f3",
    "f4",
    "f5",
)


class TaskResult(Message):
    """A dispatched task resolved. Posted from a worker thread."""

    def __init__(self, event: ConsoleEvent) -> None:
        super().__init__()
        self.event = event


class ApiConsoleApp(App):
    """Interactive console for exercising the REST API."""

    TITLE = "API Console"

    CSS = """
    #split {
        height: 1fr;
    }
    """

    BINDINGS = [Binding(key, f"route('{key}')", show=False, priority=True) for key in ROUTED_KEYS]

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        catalog: EndpointCatalog | None = None,
        client_factory: ClientFactory | None = None,
        executor: Executor | None = None,
        start_poller: bool | None = None,
    ):
        super().__init__()
        self.console_settings = settings or get_settings()
        self.logger = get_logger("tui")
        api = self.console_settings.api
        state = ApplicationState(
            base_url=api.base_url,
            user_id=api.user_id,
            user_header=api.user_header,
            request_timeout=api.request_timeout_seconds,
        )
        self.router = ScreenRouter(
            catalog,
            state,
            makefile=Path(self.console_settings.make.makefile).expanduser(),
            make_executable=self.console_settings.make.executable,
            history_window=self.console_settings.ui.history_window,
            search_enabled=self.console_settings.ui.search_enabled,
        )
        self.dispatcher = CommandDispatcher(
            self._post_event, client_factory=client_factory, executor=executor
        )
        self.poller = BackgroundPoller(
            self._poll_tick, self._schedule, interval=self.console_settings.poller.interval_seconds
        )
        self._start_poller = self.console_settings.poller.enabled if start_poller is None else start_poller
        self._stats_modal: StatsModal | None = None
        self.futures: list[Future] = []

    @property
    def app_state(self) -> ApplicationState:
        return self.router.app_state

    def compose(self) -> ComposeResult:
        with Horizontal(id="split"):
            yield EndpointListPanel(id="endpoint-list")
            yield RequestBuilderPanel(id="request-builder")
        yield HistoryPanel(id="history")
        yield SettingsPanel(id="settings")
        yield MakeCommandsPanel(id="make-commands")
        yield StatusBar(id="status-bar")

    def on_mount(self) -> None:
        set_session_context(generate_session_id(), base_url=self.app_state.base_url)
        self.router.initialize()
        if self._start_poller:
            self.poller.start()
        self.refresh_view()

    def on_unmount(self) -> None:
        self.dispatcher.shutdown()

    # ==================== INPUT ====================

    def action_route(self, key: str) -> None:
        self.route_key(key)

    def on_key(self, event: events.Key) -> None:
        if event.key in ROUTED_KEYS:
            return
        event.stop()
        event.prevent_default()
        self.route_key(event.key, event.character)

    def route_key(self, key: str, character: str | None = None) -> None:
        self._dispatch(self.router.handle_key(key, character))
        if self.app_state.quit_requested:
            self.exit()
            return
        self.refresh_view()

    # ==================== TASKS ====================

    def _dispatch(self, tasks: list[Task]) -> None:
        self.futures = [future for future in self.futures if not future.done()]
        self.futures.extend(self.dispatcher.submit_all(tasks))

    def _post_event(self, event: ConsoleEvent) -> None:
        self.post_message(TaskResult(event))

    def on_task_result(self, message: TaskResult) -> None:
        self.router.apply_event(message.event)
        self.refresh_view()

    def _poll_tick(self) -> None:
        self._dispatch(self.router.handle_tick())

    def _schedule(self, delay: float, callback) -> None:
        self.set_timer(delay, callback)

    # ==================== RENDERING ====================

    def refresh_view(self) -> None:
        state = self.app_state
        catalog = self.router.catalog
        base = state.previous_screen if state.current_screen.is_modal else state.current_screen
        base = base or Screen.ENDPOINT_LIST

        # Panels live on the bottom screen; the stats overlay sits above it.
        main = self.screen_stack[0]
        split = base in (Screen.ENDPOINT_LIST, Screen.REQUEST_BUILDER)
        main.query_one("#split").display = split
        main.query_one("#history").display = base is Screen.HISTORY
        main.query_one("#settings").display = base is Screen.SETTINGS
        main.query_one("#make-commands").display = base is Screen.MAKE_COMMANDS

        if split:
            endpoint_list = main.query_one(EndpointListPanel)
            builder = main.query_one(RequestBuilderPanel)
            endpoint_list.set_class(base is Screen.ENDPOINT_LIST, "active")
            builder.set_class(base is Screen.REQUEST_BUILDER, "active")
            endpoint_list.show(render_endpoint_list(state, catalog))
            builder.show(render_request_builder(state, catalog))
        elif base is Screen.HISTORY:
            main.query_one(HistoryPanel).show(render_history(state, self.router.history_window))
        elif base is Screen.SETTINGS:
            main.query_one(SettingsPanel).show(render_settings(state))
        elif base is Screen.MAKE_COMMANDS:
            main.query_one(MakeCommandsPanel).show(render_make_commands(state))
        main.query_one(StatusBar).show(render_status_bar(state))
        self._sync_modal()

    def _sync_modal(self) -> None:
        showing = self.app_state.current_screen.is_modal
        if showing and self._stats_modal is None:
            self._stats_modal = StatsModal(self.app_state)
            self.push_screen(self._stats_modal)
        elif not showing and self._stats_modal is not None:
            self._stats_modal = None
            self.pop_screen()
        elif self._stats_modal is not None:
            self._stats_modal.refresh_stats()


def launch(settings: Settings | None = None) -> None:
    """Launch the API console TUI."""
    settings = settings or get_settings()
    configure_from_settings(settings, to_file=True)
    app = ApiConsoleApp(settings)
    app.run()


if __name__ == "__main__":
    launch()
