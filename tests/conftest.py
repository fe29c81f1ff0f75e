"""Pytest configuration and shared fixtures.

| Category    | Focus                       | Tools                      |
| Unit        | Core modules in isolation   | pytest, httpx.MockTransport |
| Integration | Router + dispatcher + TUI   | Textual pilot, fakes        |
| CLI         | Typer commands              | typer.testing.CliRunner     |
"""

import copy
import io
import json
import os
import sys
from collections.abc import Callable
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any

import httpx
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from apiconsole.config import DEFAULT_CONFIG, Settings, config_service
from apiconsole.core.router import ScreenRouter
from apiconsole.core.state import ApplicationState
from apiconsole.utils.logging import configure_logging

BASE_URL = "http://api.test"
USER_ID = "user-1"

LOG_BUFFER = io.StringIO()

SAMPLE_MAKEFILE = """\
.PHONY: build test help

help: ## Show this help message
\t@grep -E '^[a-zA-Z_-]+:.*?## .*$$' $(MAKEFILE_LIST) | awk 'BEGIN {FS = ":.*?## "}'

build: deps ## Build the server binary
\tgo build ./...

test: ## Run the test suite
\tgo test ./...

# lint is not documented
clean:
\trm -rf bin
"""


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (component interaction)"
    )


# =============================================================================
# FAKES
# =============================================================================


class SyncExecutor(Executor):
    """Executor that runs each call inline and returns a finished future."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # noqa: BLE001 - mirror a worker thread
            future.set_exception(exc)
        return future


class FakeScheduler:
    """Records ``schedule(delay, callback)`` calls instead of arming timers."""

    def __init__(self) -> None:
        self.calls: list[tuple[float, Callable[[], None]]] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> None:
        self.calls.append((delay, callback))

    def fire_next(self) -> None:
        _, callback = self.calls.pop(0)
        callback()


class FakeBackend:
    """Minimal in-memory version of the REST API for MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.chains = [
            {"id": "c1", "chain_name": "First Chain"},
            {"id": "c2", "chain_name": "Second Chain"},
        ]
        self.templates = [{"id": "t1", "name": "Starter"}]
        self.fail_paths: set[str] = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.fail_paths:
            return httpx.Response(500, json={"error": "boom"})
        if path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if path == "/api/v1/chains" and request.method == "GET":
            return httpx.Response(200, json={"data": self.chains})
        if path == "/api/v1/templates":
            return httpx.Response(200, json={"data": self.templates})
        if path.startswith("/api/v1/chains/"):
            chain_id = path.rsplit("/", 1)[-1]
            for chain in self.chains:
                if chain["id"] == chain_id:
                    return httpx.Response(200, json={"data": chain})
            return httpx.Response(404, json={"error": "chain not found"})
        return httpx.Response(404, text="not found")

    def client_factory(self) -> Callable[[], httpx.Client]:
        return lambda: httpx.Client(transport=httpx.MockTransport(self))

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


# =============================================================================
# COMMON FIXTURES
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    """Route structlog output to an in-memory buffer for the whole run."""
    configure_logging(level="debug", output_format="json", stream=LOG_BUFFER)
    yield LOG_BUFFER


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sync_executor() -> SyncExecutor:
    return SyncExecutor()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def makefile(tmp_path) -> Path:
    path = tmp_path / "Makefile"
    path.write_text(SAMPLE_MAKEFILE, encoding="utf-8")
    return path


@pytest.fixture
def app_state() -> ApplicationState:
    return ApplicationState(base_url=BASE_URL, user_id=USER_ID)


@pytest.fixture
def router(app_state, makefile) -> ScreenRouter:
    router = ScreenRouter(state=app_state, makefile=makefile, make_executable="echo")
    router.initialize()
    return router


@pytest.fixture
def clean_env(monkeypatch):
    """Drop any APICONSOLE_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("APICONSOLE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch, clean_env):
    """Point the global config service at temporary files."""
    monkeypatch.setattr(config_service, "user_config_path", tmp_path / "user" / "config.yaml")
    monkeypatch.setattr(config_service, "project_config_path", tmp_path / "apiconsole.yaml")
    return config_service


@pytest.fixture
def settings(makefile) -> Settings:
    data = copy.deepcopy(DEFAULT_CONFIG)
    data["general"]["log_file"] = ""
    data["api"]["base_url"] = BASE_URL
    data["api"]["user_id"] = USER_ID
    data["make"]["makefile"] = str(makefile)
    data["make"]["executable"] = "echo"
    return Settings.from_dict(data)
