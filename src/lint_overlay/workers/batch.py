"""Batch analyzer adapter: one request in, one result set out.

Child side (:func:`batch_worker_main`) constructs the engine lazily on the
first request and answers each ``run`` message with either ``result`` or
``failure``. Parent side (:class:`BatchAnalyzer`) turns those answers into
awaited futures.
"""

from __future__ import annotations

import asyncio
import logging
from multiprocessing.connection import Connection
from typing import Any, Callable, Optional, Sequence

from ..engines.base import BatchEngine
from ..exceptions import RunFailedError, WorkerCrashedError
from ..models import Diagnostic, decode_diagnostics, describe_error, encode_diagnostics
from .base import AnalyzerEvents
from .process import WorkerProcess

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], BatchEngine]


def batch_worker_main(conn: Connection, engine_factory: EngineFactory) -> None:
    """Serve run requests until the parent closes the pipe or says stop."""
    engine: Optional[BatchEngine] = None

    while True:
        try:
            msg = conn.recv()
        except EOFError:
            return
        kind = msg.get("type")
        if kind == "stop":
            return
        if kind != "run":
            continue
        job_id = msg["id"]

        if engine is None:
            try:
                engine = engine_factory()
            except Exception as exc:
                conn.send(
                    {"type": "failure", "id": job_id, "message": f"Init failed: {describe_error(exc)}"}
                )
                continue

        try:
            results = engine.lint(msg.get("files"))
        except Exception as exc:
            conn.send(
                {"type": "failure", "id": job_id, "message": f"Lint crashed: {describe_error(exc)}"}
            )
            continue

        conn.send(
            {
                "type": "result",
                "id": job_id,
                "results": {path: encode_diagnostics(diags) for path, diags in results.items()},
            }
        )


class BatchAnalyzer:
    """Parent-side adapter for a batch engine running in its own process."""

    def __init__(self, name: str, engine_factory: EngineFactory) -> None:
        self.name = name
        self._worker = WorkerProcess(name, batch_worker_main, (engine_factory,))
        self._events: Optional[AnalyzerEvents] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._inflight: dict[int, asyncio.Future[dict[str, list[Diagnostic]]]] = {}
        self._next_id = 0

    def start(self, events: AnalyzerEvents, loop: asyncio.AbstractEventLoop) -> None:
        self._events = events
        self._loop = loop
        self._worker.start(loop, self._on_message, self._on_exit)

    async def run(
        self, files: Optional[Sequence[str]], reset: bool
    ) -> dict[str, list[Diagnostic]]:
        if self._loop is None:
            raise WorkerCrashedError(self.name)
        self._next_id += 1
        job_id = self._next_id
        future: asyncio.Future[dict[str, list[Diagnostic]]] = self._loop.create_future()
        self._inflight[job_id] = future
        try:
            self._worker.send(
                {"type": "run", "id": job_id, "files": None if reset else list(files or [])}
            )
            return await future
        finally:
            self._inflight.pop(job_id, None)

    def terminate(self, timeout: float = 5.0) -> None:
        self._worker.terminate(timeout)

    def _on_message(self, msg: dict[str, Any]) -> None:
        kind = msg.get("type")
        if kind == "fault":
            if self._events is not None:
                self._events.on_fault(self.name, msg.get("message", ""))
            return

        future = self._inflight.get(msg.get("id", -1))
        if future is None or future.done():
            logger.debug("%s: dropping answer for unknown job %s", self.name, msg.get("id"))
            return
        if kind == "result":
            future.set_result(
                {path: decode_diagnostics(items) for path, items in msg["results"].items()}
            )
        elif kind == "failure":
            future.set_exception(RunFailedError(self.name, msg.get("message", "")))

    def _on_exit(self, exitcode: Optional[int]) -> None:
        for future in self._inflight.values():
            if not future.done():
                future.set_exception(WorkerCrashedError(self.name, exitcode))
        if self._events is not None:
            self._events.on_exit(self.name, exitcode)
