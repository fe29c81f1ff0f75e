"""Endpoint catalog for the API console.

The catalog is an immutable, ordered registry of the backend operations the
console can exercise. Entries are created once at startup and never change;
declaration order is the display order and the search order.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from apiconsole.core.errors import CatalogError

if TYPE_CHECKING:
    from apiconsole.core.reference import ReferenceCache


class EndpointCategory(str, Enum):
    """Endpoint groups, in display order."""

    HEALTH = "Health & Routes"
    AUTH = "Authentication"
    TEMPLATES = "Templates"
    CHAINS = "Chains"
    VIRTUAL_POOLS = "Virtual Pools"


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


DefaultResolver = Callable[["ReferenceCache"], str]


@dataclass(frozen=True)
class PathParam:
    """A `{name}` placeholder in a path template."""

    name: str
    default_resolver: DefaultResolver | None = field(default=None, compare=False)

    def resolve_default(self, reference: ReferenceCache | None) -> str:
        if self.default_resolver is None or reference is None:
            return ""
        return self.default_resolver(reference) or ""


@dataclass(frozen=True)
class QueryParam:
    name: str
    description: str = ""
    example: str = ""
    required: bool = False


@dataclass(frozen=True)
class Endpoint:
    """Descriptor of one callable API operation."""

    name: str
    method: HTTPMethod
    path: str
    category: EndpointCategory
    description: str = ""
    path_params: tuple[PathParam, ...] = ()
    query_params: tuple[QueryParam, ...] = ()
    example_body: str = ""

    @property
    def label(self) -> str:
        return f"[{self.category.value}] {self.method.value} {self.name}"

    @property
    def has_body(self) -> bool:
        return bool(self.body_fields())

    def body_fields(self) -> list[tuple[str, str]]:
        """Flat (key, example value) pairs of the example body, sorted by key.

        Non-object or malformed example bodies yield no fields. Non-string
        example values are rendered as JSON so they parse back unchanged
        when the request body is built.
        """
        if not self.example_body:
            return []
        try:
            parsed = json.loads(self.example_body)
        except json.JSONDecodeError:
            return []
        if not isinstance(parsed, dict):
            return []
        return [(key, _example_text(parsed[key])) for key in sorted(parsed)]

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on category, method or name."""
        needle = needle.lower()
        return (
            needle in self.category.value.lower()
            or needle in self.method.value.lower()
            or needle in self.name.lower()
        )


def _example_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def first_chain_id(reference: ReferenceCache) -> str:
    """Default resolver: id of the first cached chain, if any."""
    return reference.first_chain_id()


def _chain_id_param() -> tuple[PathParam, ...]:
    return (PathParam("id", default_resolver=first_chain_id),)


def _paging(limit_description: str = "Items per page") -> tuple[QueryParam, ...]:
    return (
        QueryParam("page", "Page number", "1"),
        QueryParam("limit", limit_description, "10"),
    )


DEFAULT_ENDPOINTS: tuple[Endpoint, ...] = (
    # Health & Routes
    Endpoint(
        name="Health Check",
        method=HTTPMethod.GET,
        path="/health",
        category=EndpointCategory.HEALTH,
        description="Check if the API is running",
    ),
    Endpoint(
        name="List Routes",
        method=HTTPMethod.GET,
        path="/api/v1/routes",
        category=EndpointCategory.HEALTH,
        description="List all registered API routes",
    ),
    # Authentication
    Endpoint(
        name="Send Email Code",
        method=HTTPMethod.POST,
        path="/api/v1/auth/email",
        category=EndpointCategory.AUTH,
        description="Request email verification code",
        example_body='{\n  "email": "ericnielson@fastmail.mx"\n}',
    ),
    Endpoint(
        name="Verify Email Code",
        method=HTTPMethod.POST,
        path="/api/v1/auth/verify",
        category=EndpointCategory.AUTH,
        description="Verify email with code",
        example_body='{\n  "email": "ericnielson@fastmail.mx",\n  "code": "123456"\n}',
    ),
    # Templates
    Endpoint(
        name="Get Templates",
        method=HTTPMethod.GET,
        path="/api/v1/templates",
        category=EndpointCategory.TEMPLATES,
        description="List all chain templates",
        query_params=_paging()
        + (
            QueryParam("category", "Filter by category", "defi"),
            QueryParam("complexity_level", "Filter by complexity", "beginner"),
        ),
    ),
    Endpoint(
        name="Get All Virtual Pools",
        method=HTTPMethod.GET,
        path="/api/v1/virtual-pools",
        category=EndpointCategory.VIRTUAL_POOLS,
        description="List all virtual pools with pagination",
        query_params=_paging("Items per page (max 100)"),
    ),
    # Chains
    Endpoint(
        name="Get Chains",
        method=HTTPMethod.GET,
        path="/api/v1/chains",
        category=EndpointCategory.CHAINS,
        description="List all chains",
        query_params=_paging() + (QueryParam("status", "Filter by status", "draft"),),
    ),
    Endpoint(
        name="Create Chain",
        method=HTTPMethod.POST,
        path="/api/v1/chains",
        category=EndpointCategory.CHAINS,
        description="Create a new chain",
        example_body=(
            '{\n  "chain_name": "My Test Chain",\n  "token_symbol": "TEST",\n'
            '  "chain_description": "A test chain for development"\n}'
        ),
    ),
    Endpoint(
        name="Get Chain",
        method=HTTPMethod.GET,
        path="/api/v1/chains/{id}",
        category=EndpointCategory.CHAINS,
        description="Get chain by ID",
        path_params=_chain_id_param(),
    ),
    Endpoint(
        name="Delete Chain",
        method=HTTPMethod.DELETE,
        path="/api/v1/chains/{id}",
        category=EndpointCategory.CHAINS,
        description="Delete chain by ID",
        path_params=_chain_id_param(),
    ),
    # Virtual Pools
    Endpoint(
        name="Get Virtual Pool",
        method=HTTPMethod.GET,
        path="/api/v1/chains/{id}/virtual-pool",
        category=EndpointCategory.VIRTUAL_POOLS,
        description="Get virtual pool for a chain",
        path_params=_chain_id_param(),
    ),
    Endpoint(
        name="Get Transactions",
        method=HTTPMethod.GET,
        path="/api/v1/chains/{id}/transactions",
        category=EndpointCategory.VIRTUAL_POOLS,
        description="Get transactions for a chain",
        path_params=_chain_id_param(),
        query_params=_paging()
        + (
            QueryParam("user_id", "Filter by user ID"),
            QueryParam("transaction_type", "Filter by type", "buy"),
        ),
    ),
)


class EndpointCatalog(Sequence[Endpoint]):
    """Read-only ordered registry of endpoints."""

    def __init__(self, endpoints: Sequence[Endpoint] = DEFAULT_ENDPOINTS):
        self._endpoints: tuple[Endpoint, ...] = tuple(endpoints)
        self._by_name = {endpoint.name: endpoint for endpoint in self._endpoints}

    def __len__(self) -> int:
        return len(self._endpoints)

    def __getitem__(self, index):  # type: ignore[override]
        return self._endpoints[index]

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints)

    def get(self, name: str) -> Endpoint:
        try:
            return self._by_name[name]
        except KeyError:
            raise CatalogError(name) from None

    def index_of(self, name: str) -> int:
        return self._endpoints.index(self.get(name))

    def by_category(self, category: EndpointCategory) -> list[Endpoint]:
        return [endpoint for endpoint in self._endpoints if endpoint.category == category]

    def search(self, needle: str) -> int | None:
        """Index of the first entry matching ``needle``, in declared order."""
        if not needle:
            return None
        for index, endpoint in enumerate(self._endpoints):
            if endpoint.matches(needle):
                return index
        return None
