"""TUI widgets for the API console.

Every panel is a plain ``Static`` that is re-rendered from
``ApplicationState`` after each routed key or applied event. The render
functions are module-level so they can be exercised without a running app.
"""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text
from textual.widgets import Static

from apiconsole.core.catalog import EndpointCatalog, HTTPMethod
from apiconsole.core.inputs import FieldKind, snapshot
from apiconsole.core.request import RequestResult, build_url
from apiconsole.core.state import SETTINGS_FIELDS, ApplicationState, Screen

METHOD_STYLES = {
    HTTPMethod.GET: "bold green",
    HTTPMethod.POST: "bold yellow",
    HTTPMethod.PUT: "bold blue",
    HTTPMethod.DELETE: "bold red",
}

KIND_LABELS = {
    FieldKind.PATH: "path",
    FieldKind.QUERY: "query",
    FieldKind.BODY: "body",
}


def status_style(result: RequestResult) -> str:
    if result.failed:
        return "bold red"
    if result.status_code < 300:
        return "bold green"
    if result.status_code < 400:
        return "bold cyan"
    if result.status_code < 500:
        return "bold yellow"
    return "bold red"


def status_badge(result: RequestResult) -> Text:
    label = "ERR" if result.failed else str(result.status_code)
    return Text(f" {label} ", style=f"reverse {status_style(result)}")


def render_endpoint_list(state: ApplicationState, catalog: EndpointCatalog) -> RenderableType:
    lines = Text()
    current_category = None
    for index, endpoint in enumerate(catalog):
        if endpoint.category != current_category:
            current_category = endpoint.category
            if lines:
                lines.append("\n")
            lines.append(f"{current_category.value}\n", style="bold underline")
        selected = index == state.selected_index
        lines.append("> " if selected else "  ", style="bold magenta")
        lines.append(f"{endpoint.method.value:<7}", style=METHOD_STYLES.get(endpoint.method, ""))
        lines.append(endpoint.name, style="reverse" if selected else "")
        lines.append("\n")

    if state.search_mode:
        lines.append("\n/" + state.search_buffer, style="bold cyan")
        lines.append("█", style="cyan")
    return lines


def _response_view(result: RequestResult | None) -> RenderableType:
    if result is None:
        return Text("No response yet. Press Enter to send.", style="dim")
    header = Text()
    header.append_text(status_badge(result))
    header.append(f" {result.status_text or result.error or ''}")
    header.append(f"  {result.duration * 1000:.0f}ms", style="dim")
    header.append(f"  {result.request_time:%H:%M:%S}", style="dim")
    if result.content_type:
        header.append(f"  {result.content_type}", style="dim")
    return Group(header, Text(result.display_body()))


def render_request_builder(state: ApplicationState, catalog: EndpointCatalog) -> RenderableType:
    if not len(catalog):
        return Text("No endpoints", style="dim")
    endpoint = catalog[state.selected_index]
    values = snapshot(state.ordered_input_list)
    url = build_url(state.base_url, endpoint, values.path_values, values.query_values)
    editing = state.current_screen is Screen.REQUEST_BUILDER

    title = Text()
    title.append(endpoint.method.value, style=METHOD_STYLES.get(endpoint.method, ""))
    title.append(f" {endpoint.name}", style="bold")
    title.append(f"\n{endpoint.description}", style="dim")
    title.append(f"\n{url}", style="cyan")

    fields = Table.grid(padding=(0, 1))
    fields.add_column(width=2)
    fields.add_column(style="bold")
    fields.add_column()
    for index, item in enumerate(state.ordered_input_list):
        focused = editing and index == state.focused_input_index
        value = Text(item.value) if item.value else Text(item.placeholder, style="dim italic")
        if focused:
            value.append("█", style="cyan")
        label = f"{item.label} ({KIND_LABELS[item.key.kind]})"
        if item.required:
            label += " *"
        fields.add_row(">" if focused else "", label, value)

    send = Text("[ Send ]", style="reverse bold" if editing and state.send_focused else "bold")
    if state.in_flight:
        send.append(f"  sending ({state.pending_requests})...", style="yellow")

    return Group(title, Text(""), fields, Text(""), send, Text(""), _response_view(state.last_response))


def render_history(state: ApplicationState, window: int) -> RenderableType:
    recent = state.history.recent(window)
    if not recent:
        return Text("No requests yet.", style="dim")
    table = Table(expand=True, show_edge=False)
    table.add_column("Time", style="dim", width=8)
    table.add_column("Status", width=5)
    table.add_column("Method", width=7)
    table.add_column("Endpoint")
    table.add_column("Duration", justify="right", width=9)
    for index, result in enumerate(recent):
        table.add_row(
            f"{result.request_time:%H:%M:%S}",
            status_badge(result),
            Text(result.method.value, style=METHOD_STYLES.get(result.method, "")),
            Text(result.endpoint_name, style="reverse" if index == state.history_cursor else ""),
            f"{result.duration * 1000:.0f}ms",
        )
    caption = Text(f"{len(state.history)} total, showing newest {len(recent)}", style="dim")
    selected = recent[min(state.history_cursor, len(recent) - 1)]
    detail = Text(f"\n{selected.request_url}\n", style="cyan")
    detail.append(selected.display_body())
    return Group(table, caption, detail)


def render_settings(state: ApplicationState) -> RenderableType:
    form = state.settings
    grid = Table.grid(padding=(0, 1))
    grid.add_column(width=2)
    grid.add_column(style="bold", width=10)
    grid.add_column()
    for index, name in enumerate(SETTINGS_FIELDS):
        focused = index == form.focused
        value = Text(form.values.get(name, ""))
        if focused:
            value.append("█", style="cyan")
        grid.add_row(">" if focused else "", name, value)
    parts: list[RenderableType] = [grid, Text(f"\nHeader: {state.user_header}", style="dim")]
    if form.message:
        parts.append(Text(form.message, style="bold red" if form.error else "bold green"))
    parts.append(Text("Enter to apply, Esc to go back", style="dim"))
    return Group(*parts)


def render_make_commands(state: ApplicationState) -> RenderableType:
    make = state.make
    listing = Text()
    if make.load_error:
        listing.append(f"{make.load_error}\n", style="bold red")
    for index, command in enumerate(make.commands):
        selected = index == make.cursor
        listing.append("> " if selected else "  ", style="bold magenta")
        listing.append(command.name, style="reverse bold" if selected else "bold")
        if command.description:
            listing.append(f"  {command.description}", style="dim")
        listing.append("\n")

    if make.running:
        output = Text(f"Running make {make.running}...", style="yellow")
    elif make.output:
        output = Text(make.output, style="red" if make.last_exit_code else "")
    else:
        output = Text("Press Enter to run the selected target.", style="dim")
    return Group(listing, Text(""), output)


def render_status_bar(state: ApplicationState) -> RenderableType:
    bar = Text()
    bar.append(f" {state.current_screen.title} ", style="reverse bold")
    bar.append(f" {state.base_url}", style="dim")
    if state.in_flight:
        bar.append("  ● request in flight", style="yellow")
    if state.last_error:
        bar.append(f"  {state.last_error}", style="bold red")
    bar.append(
        "  f1 endpoints  f2 make  f3 stats  f4 history  f5 settings  tab fields  / search  q back",
        style="dim",
    )
    return bar


# ========== Panels ==========


class StatePanel(Static):
    """Static panel rendered from application state."""

    can_focus = False

    def show(self, renderable: RenderableType) -> None:
        self.update(renderable)


class EndpointListPanel(StatePanel):
    DEFAULT_CSS = """
    EndpointListPanel {
        width: 48;
        height: 1fr;
        border: round $primary;
        padding: 0 1;
    }
    EndpointListPanel.active { border: round $accent; }
    """


class RequestBuilderPanel(StatePanel):
    DEFAULT_CSS = """
    RequestBuilderPanel {
        width: 1fr;
        height: 1fr;
        border: round $primary;
        padding: 0 1;
        overflow-y: auto;
    }
    RequestBuilderPanel.active { border: round $accent; }
    """


class HistoryPanel(StatePanel):
    DEFAULT_CSS = """
    HistoryPanel {
        height: 1fr;
        border: round $primary;
        padding: 0 1;
    }
    """


class SettingsPanel(StatePanel):
    DEFAULT_CSS = """
    SettingsPanel {
        height: 1fr;
        border: round $primary;
        padding: 1 2;
    }
    """


class MakeCommandsPanel(StatePanel):
    DEFAULT_CSS = """
    MakeCommandsPanel {
        height: 1fr;
        border: round $primary;
        padding: 0 1;
        overflow-y: auto;
    }
    """


class StatusBar(StatePanel):
    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        dock: bottom;
    }
    """
