"""Core of the API console: catalog, inputs, tasks, router."""

from apiconsole.core.catalog import (
    DEFAULT_ENDPOINTS,
    Endpoint,
    EndpointCatalog,
    EndpointCategory,
    HTTPMethod,
    PathParam,
    QueryParam,
)
from apiconsole.core.dispatcher import CommandDispatcher
from apiconsole.core.errors import CatalogError, ConsoleError, MakefileError
from apiconsole.core.events import (
    ConsoleEvent,
    ReferenceListsUpdated,
    RequestCompleted,
    RequestFailed,
    ShellCompleted,
    StatsFetched,
)
from apiconsole.core.inputs import (
    EndpointInputState,
    FieldKey,
    FieldKind,
    InputField,
    InputStateCache,
)
from apiconsole.core.poller import BackgroundPoller
from apiconsole.core.reference import CachedChain, CachedTemplate, ReferenceCache
from apiconsole.core.request import PreparedRequest, RequestResult
from apiconsole.core.router import ScreenRouter
from apiconsole.core.state import ApplicationState, History, Screen

__all__ = [
    "ApplicationState",
    "BackgroundPoller",
    "CachedChain",
    "CachedTemplate",
    "CatalogError",
    "CommandDispatcher",
    "ConsoleError",
    "ConsoleEvent",
    "DEFAULT_ENDPOINTS",
    "Endpoint",
    "EndpointCatalog",
    "EndpointCategory",
    "EndpointInputState",
    "FieldKey",
    "FieldKind",
    "HTTPMethod",
    "History",
    "InputField",
    "InputStateCache",
    "MakefileError",
    "PathParam",
    "PreparedRequest",
    "QueryParam",
    "ReferenceCache",
    "ReferenceListsUpdated",
    "RequestCompleted",
    "RequestFailed",
    "RequestResult",
    "Screen",
    "ScreenRouter",
    "ShellCompleted",
    "StatsFetched",
]
