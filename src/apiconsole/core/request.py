"""Request building and execution.

URL, query string and JSON body are derived from an endpoint descriptor and
the operator's current input values. Execution never raises: transport and
construction failures are captured in the returned ``RequestResult``.
Non-2xx responses are ordinary results.
"""

from __future__ import annotations

import json
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from apiconsole.core.catalog import Endpoint, HTTPMethod
from apiconsole.utils.logging import get_logger, timed_operation

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_HEADER = "X-User-ID"

logger = get_logger("request")


@dataclass(frozen=True)
class RequestResult:
    """Outcome of one dispatched request. Immutable once constructed."""

    method: HTTPMethod
    endpoint_name: str
    request_url: str
    request_body: str = ""
    request_user_id: str = ""
    status_code: int = 0
    status_text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""
    duration: float = 0.0
    error: str | None = None
    request_time: datetime = field(default_factory=datetime.now)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def is_success(self) -> bool:
        return not self.failed and 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""

    def display_body(self) -> str:
        if self.error is not None:
            return f"Error: {self.error}"
        return self.body


@dataclass(frozen=True)
class PreparedRequest:
    """Everything a request task needs, captured at dispatch time."""

    endpoint_name: str
    method: HTTPMethod
    url: str
    body: str
    user_id: str
    user_header: str = DEFAULT_USER_HEADER

    @property
    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", self.user_header: self.user_id}


def substitute_path(endpoint: Endpoint, path_values: Mapping[str, str]) -> str:
    """Fill the endpoint's declared path params; empty ones stay unresolved."""
    path = endpoint.path
    for param in endpoint.path_params:
        value = path_values.get(param.name, "")
        if value:
            path = path.replace("{" + param.name + "}", value)
    return path


def build_query(endpoint: Endpoint, query_values: Mapping[str, str]) -> str:
    """Non-empty query values in declared order, ``&``-joined, without ``?``."""
    pairs = []
    for param in endpoint.query_params:
        value = query_values.get(param.name, "")
        if value:
            pairs.append(f"{param.name}={value}")
    return "&".join(pairs)


def build_url(
    base_url: str,
    endpoint: Endpoint,
    path_values: Mapping[str, str],
    query_values: Mapping[str, str],
) -> str:
    url = base_url + substitute_path(endpoint, path_values)
    query = build_query(endpoint, query_values)
    return f"{url}?{query}" if query else url


def coerce_body_value(raw: str) -> Any:
    """Parse a field value as JSON when possible, else keep the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def build_body(field_names: Sequence[str], body_values: Mapping[str, str]) -> str:
    """Serialize non-empty body fields as a JSON object.

    Returns an empty string when the endpoint declares no body fields.
    """
    if not field_names:
        return ""
    payload = {}
    for name in field_names:
        value = body_values.get(name, "")
        if value:
            payload[name] = coerce_body_value(value)
    return json.dumps(payload)


def prepare_request(
    endpoint: Endpoint,
    path_values: Mapping[str, str],
    query_values: Mapping[str, str],
    body_values: Mapping[str, str],
    *,
    base_url: str,
    user_id: str,
    user_header: str = DEFAULT_USER_HEADER,
) -> PreparedRequest:
    field_names = [name for name, _ in endpoint.body_fields()]
    return PreparedRequest(
        endpoint_name=endpoint.name,
        method=endpoint.method,
        url=build_url(base_url, endpoint, path_values, query_values),
        body=build_body(field_names, body_values),
        user_id=user_id,
        user_header=user_header,
    )


def format_json_body(raw: bytes | str) -> str:
    """Pretty-print JSON with two-space indent; other bodies pass through."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except (json.JSONDecodeError, ValueError):
        return text


def execute_request(
    prepared: PreparedRequest,
    *,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> RequestResult:
    """Send ``prepared`` and capture the outcome."""
    request_time = datetime.now()
    started = time.perf_counter()
    base = dict(
        method=prepared.method,
        endpoint_name=prepared.endpoint_name,
        request_url=prepared.url,
        request_body=prepared.body,
        request_user_id=prepared.user_id,
        request_time=request_time,
    )

    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        with timed_operation(
            "request.http", logger=logger, method=prepared.method.value, url=prepared.url
        ):
            response = http.request(
                prepared.method.value,
                prepared.url,
                content=prepared.body or None,
                headers=prepared.headers,
                timeout=timeout,
            )
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        logger.info("request.failed", endpoint=prepared.endpoint_name, error=str(exc))
        return RequestResult(
            **base,
            duration=time.perf_counter() - started,
            error=str(exc) or type(exc).__name__,
        )
    finally:
        if owns_client:
            http.close()

    result = RequestResult(
        **base,
        status_code=response.status_code,
        status_text=f"{response.status_code} {response.reason_phrase}".strip(),
        headers=dict(response.headers),
        body=format_json_body(response.content),
        duration=time.perf_counter() - started,
    )
    logger.info(
        "request.completed",
        endpoint=prepared.endpoint_name,
        status=result.status_code,
        duration_ms=round(result.duration * 1000, 2),
    )
    return result
