"""Units of outbound work.

Each task captures everything it needs (base URL, user id, timeout) at
dispatch time, runs off the interaction loop, and resolves to exactly one
event. ``on_error`` converts an unexpected exception into that event so a
task can never fail silently.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

import httpx

from apiconsole.core.events import (
    ConsoleEvent,
    ReferenceListsUpdated,
    RequestCompleted,
    RequestFailed,
    ShellCompleted,
    StatsFetched,
)
from apiconsole.core.make_commands import ProcessRegistry, error_banner, run_make_command
from apiconsole.core.reference import (
    CHAINS_PATH,
    TEMPLATES_PATH,
    ReferenceFetchError,
    count_items,
    fetch_chains,
    fetch_templates,
)
from apiconsole.core.request import (
    DEFAULT_TIMEOUT_SECONDS,
    PreparedRequest,
    RequestResult,
    execute_request,
)


@dataclass(frozen=True)
class Task:
    """Base class. Subclasses implement ``run`` and ``on_error``."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def attach(self, processes: ProcessRegistry) -> Task:
        """Return the task bound to the registry tracking its child processes."""
        return self

    def run(self, client: httpx.Client) -> ConsoleEvent:
        raise NotImplementedError

    def on_error(self, exc: BaseException) -> ConsoleEvent:
        raise NotImplementedError


@dataclass(frozen=True)
class ExecuteRequest(Task):
    prepared: PreparedRequest
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def run(self, client: httpx.Client) -> ConsoleEvent:
        result = execute_request(self.prepared, client=client, timeout=self.timeout)
        if result.failed:
            return RequestFailed(result)
        return RequestCompleted(result)

    def on_error(self, exc: BaseException) -> ConsoleEvent:
        return RequestFailed(
            RequestResult(
                method=self.prepared.method,
                endpoint_name=self.prepared.endpoint_name,
                request_url=self.prepared.url,
                request_body=self.prepared.body,
                request_user_id=self.prepared.user_id,
                error=str(exc) or type(exc).__name__,
            )
        )


@dataclass(frozen=True)
class RunMakeCommand(Task):
    name: str
    cwd: Path | None = None
    executable: str = "make"
    processes: ProcessRegistry | None = field(default=None, compare=False, repr=False)

    def attach(self, processes: ProcessRegistry) -> Task:
        return replace(self, processes=processes)

    def run(self, client: httpx.Client) -> ConsoleEvent:
        outcome = run_make_command(
            self.name, cwd=self.cwd, executable=self.executable, processes=self.processes
        )
        return ShellCompleted(self.name, outcome.output, outcome.exit_code)

    def on_error(self, exc: BaseException) -> ConsoleEvent:
        return ShellCompleted(self.name, error_banner(self.name, str(exc), ""), exit_code=1)


@dataclass(frozen=True)
class FetchChains(Task):
    base_url: str
    user_id: str
    user_header: str = "X-User-ID"

    def run(self, client: httpx.Client) -> ConsoleEvent:
        try:
            chains = fetch_chains(client, self.base_url, self.user_header, self.user_id)
        except ReferenceFetchError as exc:
            return self.on_error(exc)
        return ReferenceListsUpdated(chains=tuple(chains))

    def on_error(self, exc: BaseException) -> ConsoleEvent:
        return ReferenceListsUpdated(errors=(f"chains: {exc}",))


@dataclass(frozen=True)
class FetchTemplates(Task):
    base_url: str

    def run(self, client: httpx.Client) -> ConsoleEvent:
        try:
            templates = fetch_templates(client, self.base_url)
        except ReferenceFetchError as exc:
            return self.on_error(exc)
        return ReferenceListsUpdated(templates=tuple(templates))

    def on_error(self, exc: BaseException) -> ConsoleEvent:
        return ReferenceListsUpdated(errors=(f"templates: {exc}",))


@dataclass(frozen=True)
class FetchStats(Task):
    """Count templates and chains on the server."""

    base_url: str
    user_id: str
    user_header: str = "X-User-ID"

    def run(self, client: httpx.Client) -> ConsoleEvent:
        try:
            templates = count_items(client, self.base_url + TEMPLATES_PATH, {})
            chains = count_items(
                client,
                self.base_url + CHAINS_PATH,
                {self.user_header: self.user_id},
            )
        except ReferenceFetchError as exc:
            return self.on_error(exc)
        return StatsFetched(template_count=templates, chain_count=chains)

    def on_error(self, exc: BaseException) -> ConsoleEvent:
        return StatsFetched(error=str(exc) or type(exc).__name__)
