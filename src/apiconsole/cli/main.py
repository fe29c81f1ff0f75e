"""
Main CLI application definition.

Running ``apiconsole`` with no subcommand launches the interactive console.
The subcommands expose the same catalog, build targets and request engine
for one-shot use from scripts.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from apiconsole.cli import utils as cli_utils
from apiconsole.cli.commands import config as config_commands
from apiconsole.config import Settings
from apiconsole.core.catalog import EndpointCatalog
from apiconsole.core.dispatcher import default_client_factory
from apiconsole.core.errors import CatalogError, MakefileError
from apiconsole.core.inputs import fresh_state
from apiconsole.core.make_commands import load_make_commands
from apiconsole.core.request import execute_request, prepare_request
from apiconsole.utils.logging import configure_from_settings, get_logger

app = typer.Typer(
    name="apiconsole",
    help="""Interactive terminal console for the REST API.

    \b
    COMMANDS:
      ui         - Launch the interactive console (default)
      endpoints  - List the endpoint catalog
      targets    - List documented Makefile targets
      send       - Send one request and print the response
      config     - View and modify configuration
    """,
    add_completion=False,
    no_args_is_help=False,
)

app.add_typer(config_commands.app, name="config")

logger = get_logger("cli")


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj["settings"]


def _console(settings: Settings) -> Console:
    return Console(no_color=not settings.general.color_enabled, highlight=False)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    base_url: str | None = typer.Option(None, "--base-url", help="API base URL"),
    user_id: str | None = typer.Option(None, "--user-id", help="Value of the user header"),
    makefile: Path | None = typer.Option(None, "--makefile", help="Makefile listing build targets"),
    output: str | None = typer.Option(None, "--output", "-o", help="Output format (text|json)"),
    color: bool | None = typer.Option(None, "--color/--no-color", help="Enable or disable color output"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase verbosity (stackable)"),
    quiet: int = typer.Option(0, "--quiet", "-q", count=True, help="Decrease verbosity (stackable)"),
) -> None:
    """Global options and configuration bootstrap."""

    cli_overrides: dict[str, Any] = {"general": {}, "api": {}, "make": {}}
    if base_url:
        cli_overrides["api"]["base_url"] = base_url
    if user_id:
        cli_overrides["api"]["user_id"] = user_id
    if makefile:
        cli_overrides["make"]["makefile"] = str(makefile)
    if output:
        cli_overrides["general"]["output_format"] = output
    if color is not None:
        cli_overrides["general"]["color_enabled"] = color

    try:
        base_settings = cli_utils.load_settings_with_cli_overrides(config_path=config)
        cli_overrides["general"]["verbosity"] = cli_utils.compute_verbosity(
            base_settings.general.verbosity, verbose, quiet
        )
        settings = cli_utils.load_settings_with_cli_overrides(
            config_path=config,
            cli_overrides=cli_overrides,
        )
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    ctx.obj = {"settings": settings}

    if ctx.invoked_subcommand is None:
        _launch(settings)
    elif ctx.invoked_subcommand != "ui":
        configure_from_settings(settings, to_file=False)


def _launch(settings: Settings) -> None:
    from apiconsole.tui.app import launch

    launch(settings)


@app.command()
def ui(ctx: typer.Context) -> None:
    """Launch the interactive console."""
    _launch(_settings(ctx))


@app.command()
def version() -> None:
    """Show version information."""
    from apiconsole import __version__

    typer.echo(f"apiconsole version {__version__}")


@app.command()
def endpoints(ctx: typer.Context) -> None:
    """List the endpoint catalog in display order."""
    settings = _settings(ctx)
    catalog = EndpointCatalog()

    if settings.general.output_format == "json":
        rows = [
            {
                "name": endpoint.name,
                "method": endpoint.method.value,
                "path": endpoint.path,
                "category": endpoint.category.value,
                "description": endpoint.description,
            }
            for endpoint in catalog
        ]
        typer.echo(json.dumps(rows, indent=2))
        return

    table = Table(title="Endpoints")
    table.add_column("Category")
    table.add_column("Method")
    table.add_column("Name")
    table.add_column("Path")
    for endpoint in catalog:
        table.add_row(endpoint.category.value, endpoint.method.value, endpoint.name, endpoint.path)
    _console(settings).print(table)


@app.command()
def targets(ctx: typer.Context) -> None:
    """List documented targets from the configured Makefile."""
    settings = _settings(ctx)
    path = Path(settings.make.makefile).expanduser()
    try:
        commands = load_make_commands(path)
    except MakefileError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    if settings.general.output_format == "json":
        rows = [{"name": c.name, "description": c.description} for c in commands]
        typer.echo(json.dumps(rows, indent=2))
        return
    for command in commands:
        typer.echo(f"{command.name:<24} {command.description}")


@app.command()
def send(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Endpoint name, e.g. 'Get Chain'"),
    path: list[str] | None = typer.Option(None, "--path", "-p", help="Path parameter key=value"),
    query: list[str] | None = typer.Option(None, "--query", "-Q", help="Query parameter key=value"),
    body: list[str] | None = typer.Option(None, "--body", "-b", help="Body field key=value"),
) -> None:
    """Send one request and print the status and response body.

    Body fields start from the endpoint's example body; options override them.
    """
    settings = _settings(ctx)
    catalog = EndpointCatalog()
    try:
        endpoint = catalog.get(name)
    except CatalogError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    values = fresh_state(endpoint)
    values.path_values.update(cli_utils.parse_pairs(path, "--path"))
    values.query_values.update(cli_utils.parse_pairs(query, "--query"))
    values.body_values.update(cli_utils.parse_pairs(body, "--body"))

    prepared = prepare_request(
        endpoint,
        values.path_values,
        values.query_values,
        values.body_values,
        base_url=settings.api.base_url,
        user_id=settings.api.user_id,
        user_header=settings.api.user_header,
    )
    logger.debug("cli.send", endpoint=endpoint.name, url=prepared.url)
    with default_client_factory() as client:
        result = execute_request(
            prepared, client=client, timeout=settings.api.request_timeout_seconds
        )

    if settings.general.output_format == "json":
        typer.echo(
            json.dumps(
                {
                    "endpoint": result.endpoint_name,
                    "method": result.method.value,
                    "url": result.request_url,
                    "status_code": result.status_code,
                    "content_type": result.content_type,
                    "duration_ms": round(result.duration * 1000, 2),
                    "error": result.error,
                    "body": result.body,
                },
                indent=2,
            )
        )
    elif result.failed:
        typer.echo(f"{result.method.value} {result.request_url}", err=True)
    else:
        typer.echo(f"{result.method.value} {result.request_url}")
        typer.echo(f"{result.status_text} ({result.duration * 1000:.0f}ms)")
        typer.echo(result.body)

    if result.failed:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
