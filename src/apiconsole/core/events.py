"""Result events posted back to the interaction loop by dispatched tasks."""

from __future__ import annotations

from dataclasses import dataclass, field

from apiconsole.core.reference import CachedChain, CachedTemplate
from apiconsole.core.request import RequestResult


@dataclass(frozen=True)
class ConsoleEvent:
    """Base class for all task results."""


@dataclass(frozen=True)
class RequestCompleted(ConsoleEvent):
    result: RequestResult


@dataclass(frozen=True)
class RequestFailed(ConsoleEvent):
    """A request that never produced a response. ``result.error`` is set."""

    result: RequestResult

    @property
    def error(self) -> str:
        return self.result.error or ""


@dataclass(frozen=True)
class ShellCompleted(ConsoleEvent):
    command_name: str
    output: str
    exit_code: int = 0


@dataclass(frozen=True)
class ReferenceListsUpdated(ConsoleEvent):
    """``None`` for a list means that list was not (successfully) fetched."""

    chains: tuple[CachedChain, ...] | None = None
    templates: tuple[CachedTemplate, ...] | None = None
    errors: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StatsFetched(ConsoleEvent):
    template_count: int = 0
    chain_count: int = 0
    error: str | None = None
