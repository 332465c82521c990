"""
Shared test fixtures for the Modular Workspace.

This module provides common fixtures used across all test modules:
- FakeGateway: in-memory stand-in for RemoteDataGateway with failure injection
- storage: a fresh MemoryStorage
- ui: a HeadlessSurface recording everything rendered
- engine: a SyncEngine with a short debounce wired to the fakes above
- settings: WorkspaceSettings pointing at a dummy URL

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from modular_workspace.config import RetryPolicy, WorkspaceSettings
from modular_workspace.core import HeadlessSurface
from modular_workspace.lib.exceptions import GatewayResponseError, GatewayUnavailableError
from modular_workspace.services import MemoryStorage, SyncEngine

# Short enough to keep the suite fast, long enough that writes in one
# test step coalesce before the timer fires.
DEBOUNCE = 0.05


# ---------------------------------------------------------------------------
# 1. Fake gateway
# ---------------------------------------------------------------------------


class FakeGateway:
    """In-memory document store mimicking RemoteDataGateway.

    Attributes:
        documents: Server-side documents by module id
        saves: (module_id, document) for every accepted save, in order
        fetches: module ids fetched, in order
        fail_saves / fail_fetches: module ids whose calls raise
        offline: every call raises GatewayUnavailableError
        save_delay: seconds each save waits before completing
    """

    def __init__(self, documents: dict[str, Any] | None = None) -> None:
        self.documents: dict[str, Any] = dict(documents or {})
        self.saves: list[tuple[str, Any]] = []
        self.fetches: list[str] = []
        self.fail_saves: set[str] = set()
        self.fail_fetches: set[str] = set()
        self.offline = False
        self.save_delay = 0.0
        self.deleted_calls = 0
        self.closed = False

    async def fetch(self, module_id: str) -> Any | None:
        self.fetches.append(module_id)
        if self.offline:
            raise GatewayUnavailableError("connection refused")
        if module_id in self.fail_fetches:
            raise GatewayResponseError(500)
        if module_id not in self.documents:
            return None
        return copy.deepcopy(self.documents[module_id])

    async def save(self, module_id: str, document: Any) -> None:
        if self.save_delay:
            await asyncio.sleep(self.save_delay)
        if self.offline:
            raise GatewayUnavailableError("connection refused")
        if module_id in self.fail_saves:
            raise GatewayResponseError(500)
        self.documents[module_id] = copy.deepcopy(document)
        self.saves.append((module_id, copy.deepcopy(document)))

    async def delete_all(self) -> int:
        self.deleted_calls += 1
        if self.offline:
            raise GatewayUnavailableError("connection refused")
        count = len(self.documents)
        self.documents.clear()
        return count

    async def aclose(self) -> None:
        self.closed = True

    def saved_ids(self) -> list[str]:
        return [module_id for module_id, _ in self.saves]


class FakeClock:
    """Manually advanced wall clock in seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# 2. Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def ui():
    return HeadlessSurface()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def engine(storage, gateway, ui):
    """SyncEngine with a 50 ms debounce; shut down after the test."""
    sync = SyncEngine(
        storage,
        gateway,
        debounce_seconds=DEBOUNCE,
        sync_interval_seconds=3600,
        stale_after_seconds=300,
        on_message=ui.show_message,
        on_status=ui.update_status,
    )
    yield sync
    await sync.shutdown()


@pytest.fixture
def settings():
    return WorkspaceSettings(
        rest_url="https://example.test/wp-json/fm/v1/",
        nonce="test-nonce",
        debounce_seconds=DEBOUNCE,
        sync_interval_seconds=3600,
        retry=RetryPolicy(),
    )


async def wait_for_flush(engine: SyncEngine) -> None:
    """Let the debounce timer fire and every spawned sync finish."""
    await asyncio.sleep(DEBOUNCE * 3)
    await engine.wait_for_background()


@pytest.fixture
def flush():
    """The wait_for_flush helper, for tests that cannot import conftest."""
    return wait_for_flush
