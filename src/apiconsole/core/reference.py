"""Reference data cache: lookup lists fetched from the backend.

The cache is a best-effort snapshot used only for default parameter values
and display counts. The last successful fetch of a list replaces it
wholesale; a failed fetch leaves the previous value in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

CHAINS_PATH = "/api/v1/chains"
TEMPLATES_PATH = "/api/v1/templates"


class CachedChain(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    name: str = Field(default="", alias="chain_name")


class CachedTemplate(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""


class ChainListPayload(BaseModel):
    data: list[CachedChain] = Field(default_factory=list)


class TemplateListPayload(BaseModel):
    data: list[CachedTemplate] = Field(default_factory=list)


class CountPayload(BaseModel):
    data: list[object] = Field(default_factory=list)


class ReferenceFetchError(Exception):
    """A reference list could not be fetched or decoded."""


@dataclass
class ReferenceCache:
    chains: list[CachedChain] = field(default_factory=list)
    templates: list[CachedTemplate] = field(default_factory=list)
    chains_updated_at: datetime | None = None
    templates_updated_at: datetime | None = None

    def first_chain_id(self) -> str:
        return self.chains[0].id if self.chains else ""

    def replace_chains(self, chains: list[CachedChain]) -> None:
        self.chains = list(chains)
        self.chains_updated_at = datetime.now()

    def replace_templates(self, templates: list[CachedTemplate]) -> None:
        self.templates = list(templates)
        self.templates_updated_at = datetime.now()


def _get_json(client: httpx.Client, url: str, headers: dict[str, str]) -> bytes:
    try:
        response = client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        raise ReferenceFetchError(f"GET {url} failed: {exc}") from exc
    if not response.is_success:
        raise ReferenceFetchError(f"GET {url} returned {response.status_code}")
    return response.content


def fetch_chains(
    client: httpx.Client, base_url: str, user_header: str, user_id: str
) -> list[CachedChain]:
    raw = _get_json(client, base_url + CHAINS_PATH, {user_header: user_id})
    try:
        return ChainListPayload.model_validate_json(raw).data
    except ValidationError as exc:
        raise ReferenceFetchError(f"Invalid chains payload: {exc}") from exc


def fetch_templates(client: httpx.Client, base_url: str) -> list[CachedTemplate]:
    raw = _get_json(client, base_url + TEMPLATES_PATH, {})
    try:
        return TemplateListPayload.model_validate_json(raw).data
    except ValidationError as exc:
        raise ReferenceFetchError(f"Invalid templates payload: {exc}") from exc


def count_items(client: httpx.Client, url: str, headers: dict[str, str]) -> int:
    raw = _get_json(client, url, headers)
    try:
        return len(CountPayload.model_validate_json(raw).data)
    except ValidationError as exc:
        raise ReferenceFetchError(f"Invalid list payload from {url}: {exc}") from exc
