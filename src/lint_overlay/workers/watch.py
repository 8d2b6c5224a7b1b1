"""Watch analyzer adapter: the engine drives itself and pushes snapshots."""

from __future__ import annotations

import asyncio
import logging
from multiprocessing.connection import Connection
from typing import Any, Callable, Optional, Sequence

from ..engines.base import WatchEngine
from ..models import Diagnostic, decode_diagnostics, encode_diagnostics
from .base import AnalyzerEvents
from .process import WorkerProcess

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], WatchEngine]


def watch_worker_main(conn: Connection, engine_factory: EngineFactory) -> None:
    """Run the engine's watch loop, forwarding every full snapshot.

    Returning (for instance when the engine cannot find its configuration)
    ends the process with exit code 0.
    """
    engine = engine_factory()

    def emit(diagnostics: Sequence[Diagnostic]) -> None:
        conn.send({"type": "snapshot", "errors": encode_diagnostics(diagnostics)})

    engine.watch(emit)


class WatchAnalyzer:
    """Parent-side adapter for a self-driving watch engine."""

    def __init__(self, name: str, engine_factory: EngineFactory) -> None:
        self.name = name
        self._worker = WorkerProcess(name, watch_worker_main, (engine_factory,))
        self._events: Optional[AnalyzerEvents] = None

    def start(self, events: AnalyzerEvents, loop: asyncio.AbstractEventLoop) -> None:
        self._events = events
        self._worker.start(loop, self._on_message, self._on_exit)

    def terminate(self, timeout: float = 5.0) -> None:
        self._worker.terminate(timeout)

    def _on_message(self, msg: dict[str, Any]) -> None:
        if self._events is None:
            return
        kind = msg.get("type")
        if kind == "snapshot":
            self._events.on_snapshot(self.name, decode_diagnostics(msg.get("errors", [])))
        elif kind == "fault":
            self._events.on_fault(self.name, msg.get("message", ""))

    def _on_exit(self, exitcode: Optional[int]) -> None:
        if self._events is not None:
            self._events.on_exit(self.name, exitcode)
