"""Shared test fixtures for lint-overlay tests."""

import asyncio
from typing import Any, Optional, Sequence

import pytest

from lint_overlay.core.coordinator import OverlayCoordinator
from lint_overlay.models import Diagnostic, Severity
from lint_overlay.server.gateway import NotificationGateway


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# ── Fakes ─────────────────────────────────────────────────────────


def diag(
    file: str = "src/a.js",
    line: int = 1,
    message: str = "problem",
    source: str = "ESLint",
    severity: Severity = Severity.ERROR,
) -> Diagnostic:
    return Diagnostic(file=file, line=line, message=message, source=source, severity=severity)


class FakeBatchAdapter:
    """In-process batch adapter.

    Each run pops the next queued outcome (a result mapping or an
    exception); with nothing queued it returns ``results``. Setting
    ``gate`` holds runs until the event is set.
    """

    def __init__(self, name: str = "ESLint", results: Optional[dict] = None) -> None:
        self.name = name
        self.results: dict[str, list[Diagnostic]] = results or {}
        self.outcomes: list[Any] = []
        self.calls: list[tuple[Optional[list[str]], bool]] = []
        self.gate: Optional[asyncio.Event] = None
        self.events: Any = None
        self.started = False
        self.terminated = False

    def start(self, events, loop) -> None:
        self.events = events
        self.started = True

    async def run(self, files: Optional[Sequence[str]], reset: bool):
        self.calls.append((None if files is None else list(files), reset))
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        outcome = self.outcomes.pop(0) if self.outcomes else self.results
        if isinstance(outcome, BaseException):
            raise outcome
        return dict(outcome)

    def terminate(self, timeout: float = 5.0) -> None:
        self.terminated = True


class FakeWatchAdapter:
    """In-process watch adapter; tests push snapshots through ``events``."""

    def __init__(self, name: str = "TS") -> None:
        self.name = name
        self.events: Any = None
        self.started = False
        self.terminated = False

    def start(self, events, loop) -> None:
        self.events = events
        self.started = True

    def terminate(self, timeout: float = 5.0) -> None:
        self.terminated = True


@pytest.fixture
def make_diag():
    return diag


@pytest.fixture
def fake_batch():
    return FakeBatchAdapter


@pytest.fixture
def fake_watch():
    return FakeWatchAdapter


@pytest.fixture
def gateway():
    return NotificationGateway()


@pytest.fixture
def make_coordinator(tmp_path, gateway):
    """Build a coordinator rooted at tmp_path with the given adapters."""

    def _make(batch=(), watch=()):
        coordinator = OverlayCoordinator(str(tmp_path), gateway)
        for adapter in watch:
            coordinator.add_watch_analyzer(adapter)
        for adapter in batch:
            coordinator.add_batch_analyzer(adapter)
        return coordinator

    return _make
