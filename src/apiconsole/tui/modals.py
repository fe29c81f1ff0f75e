"""Modal overlays for the API console."""

from __future__ import annotations

from datetime import datetime

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import Static

from apiconsole.core.state import ApplicationState

NAME_WIDTH = 20
ID_WIDTH = 30


def truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: width - 3] + "..."


def clock(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")


def render_stats(state: ApplicationState) -> RenderableType:
    stats = state.stats
    reference = state.reference
    if stats.loading:
        server = Text("Loading...", style="yellow")
    elif stats.error:
        server = Text(f"Error: {stats.error}", style="bold red")
    else:
        server = Table.grid(padding=(0, 2))
        server.add_column(style="bold")
        server.add_column(justify="right")
        server.add_row("Templates", str(stats.template_count))
        server.add_row("Chains", str(stats.chain_count))
        if stats.fetched_at is not None:
            server.add_row("Fetched", clock(stats.fetched_at))

    cached = Table.grid(padding=(0, 2))
    cached.add_column(style="bold")
    cached.add_column(justify="right")
    cached.add_row("Templates", str(len(reference.templates)))
    cached.add_row("Chains", str(len(reference.chains)))
    if reference.chains:
        first = reference.chains[0]
        cached.add_row("First chain", truncate(first.name, NAME_WIDTH))
        cached.add_row("", Text(truncate(first.id, ID_WIDTH), style="dim"))
    if reference.chains_updated_at is not None:
        cached.add_row("Chains updated", clock(reference.chains_updated_at))
    if reference.templates_updated_at is not None:
        cached.add_row("Templates updated", clock(reference.templates_updated_at))

    return Group(
        Text("Server", style="bold underline"),
        server,
        Text(""),
        Text("Cached", style="bold underline"),
        cached,
        Text("\nPress any key to close", style="dim"),
    )


class StatsModal(ModalScreen[None]):
    """Server and cache statistics. Any key closes it.

    The modal never handles keys itself; they bubble up to the app, which
    routes them and pops this screen once the router has left the overlay.
    """

    DEFAULT_CSS = """
    StatsModal {
        align: center middle;
    }

    StatsModal > Container {
        width: 48;
        height: auto;
        border: thick $primary;
        background: $surface;
        padding: 1 2;
    }

    StatsModal .modal-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }
    """

    def __init__(self, state: ApplicationState, **kwargs) -> None:
        super().__init__(**kwargs)
        self._state = state

    def compose(self) -> ComposeResult:
        with Container():
            yield Static("Statistics", classes="modal-title")
            yield Static(render_stats(self._state), id="stats-body")

    def refresh_stats(self) -> None:
        for body in self.query("#stats-body").results(Static):
            body.update(render_stats(self._state))
