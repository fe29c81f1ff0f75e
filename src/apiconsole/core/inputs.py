"""Per-endpoint input state.

Each endpoint the operator visits gets an ``EndpointInputState`` holding the
entered path, query and body values plus the last response. The flat list of
editable fields shown in the request builder is always derived from the
endpoint's declared parameter order (path, then query, then body keys sorted),
and every field carries an explicit ``FieldKey`` so edits are written back to
the right map by key, never by comparing values.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from apiconsole.core.catalog import Endpoint

if TYPE_CHECKING:
    from apiconsole.core.reference import ReferenceCache
    from apiconsole.core.request import RequestResult


class FieldKind(str, Enum):
    PATH = "path"
    QUERY = "query"
    BODY = "body"


@dataclass(frozen=True)
class FieldKey:
    kind: FieldKind
    name: str


@dataclass
class InputField:
    """One editable field in the request builder."""

    key: FieldKey
    value: str = ""
    placeholder: str = ""
    description: str = ""
    required: bool = False
    char_limit: int = 100

    @property
    def label(self) -> str:
        return self.key.name

    def type_text(self, text: str) -> None:
        room = self.char_limit - len(self.value)
        if room > 0:
            self.value += text[:room]

    def backspace(self) -> None:
        self.value = self.value[:-1]

    def clear(self) -> None:
        self.value = ""


@dataclass
class EndpointInputState:
    path_values: dict[str, str] = field(default_factory=dict)
    query_values: dict[str, str] = field(default_factory=dict)
    body_values: dict[str, str] = field(default_factory=dict)
    last_response: RequestResult | None = None

    def copy(self) -> EndpointInputState:
        return EndpointInputState(
            path_values=dict(self.path_values),
            query_values=dict(self.query_values),
            body_values=dict(self.body_values),
            last_response=self.last_response,
        )

    def with_response(self, response: RequestResult | None) -> EndpointInputState:
        return replace(self.copy(), last_response=response)

    def values_for(self, kind: FieldKind) -> dict[str, str]:
        if kind is FieldKind.PATH:
            return self.path_values
        if kind is FieldKind.QUERY:
            return self.query_values
        return self.body_values


def field_keys(endpoint: Endpoint) -> list[FieldKey]:
    """Ordered field identities: path params, query params, sorted body keys."""
    keys = [FieldKey(FieldKind.PATH, param.name) for param in endpoint.path_params]
    keys += [FieldKey(FieldKind.QUERY, param.name) for param in endpoint.query_params]
    keys += [FieldKey(FieldKind.BODY, name) for name, _ in endpoint.body_fields()]
    return keys


def fresh_state(
    endpoint: Endpoint, reference: ReferenceCache | None = None
) -> EndpointInputState:
    """Initial values for a never-visited endpoint.

    Path params are seeded from their default resolver when the reference
    cache can supply one; body fields are seeded from the example body.
    """
    state = EndpointInputState()
    for param in endpoint.path_params:
        state.path_values[param.name] = param.resolve_default(reference)
    for param in endpoint.query_params:
        state.query_values[param.name] = ""
    for name, example in endpoint.body_fields():
        state.body_values[name] = example
    return state


def build_input_list(endpoint: Endpoint, state: EndpointInputState) -> list[InputField]:
    fields: list[InputField] = []
    for param in endpoint.path_params:
        fields.append(
            InputField(
                key=FieldKey(FieldKind.PATH, param.name),
                value=state.path_values.get(param.name, ""),
                placeholder=param.name,
                required=True,
            )
        )
    for param in endpoint.query_params:
        fields.append(
            InputField(
                key=FieldKey(FieldKind.QUERY, param.name),
                value=state.query_values.get(param.name, ""),
                placeholder=param.example or param.name,
                description=param.description,
                required=param.required,
            )
        )
    for name, example in endpoint.body_fields():
        fields.append(
            InputField(
                key=FieldKey(FieldKind.BODY, name),
                value=state.body_values.get(name, ""),
                placeholder=example or name,
                char_limit=200,
            )
        )
    return fields


def snapshot(
    fields: list[InputField], last_response: RequestResult | None = None
) -> EndpointInputState:
    """Collect field values back into keyed maps."""
    state = EndpointInputState(last_response=last_response)
    for item in fields:
        state.values_for(item.key.kind)[item.key.name] = item.value
    return state


class InputStateCache:
    """Saved input state per endpoint name. Entries are never evicted."""

    def __init__(self) -> None:
        self._entries: dict[str, EndpointInputState] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> list[str]:
        return list(self._entries)

    def save(self, name: str, state: EndpointInputState) -> bool:
        if not name:
            return False
        self._entries[name] = state.copy()
        return True

    def restore(self, name: str) -> EndpointInputState | None:
        entry = self._entries.get(name)
        return entry.copy() if entry is not None else None

    def attach_response(self, name: str, response: RequestResult) -> bool:
        """Record ``response`` as the last response of a saved endpoint."""
        entry = self._entries.get(name)
        if entry is None:
            return False
        self._entries[name] = entry.with_response(response)
        return True
