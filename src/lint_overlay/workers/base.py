"""Contracts between the coordinator and analyzer adapters."""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Sequence

from ..models import Diagnostic


class AnalyzerEvents(Protocol):
    """Callbacks an adapter delivers on the coordinator's event loop."""

    def on_snapshot(self, name: str, diagnostics: Sequence[Diagnostic]) -> None: ...

    def on_fault(self, name: str, message: str) -> None: ...

    def on_exit(self, name: str, exitcode: Optional[int]) -> None: ...


class BatchAdapter(Protocol):
    """Analyzer re-invoked per request with an explicit file set."""

    name: str

    def start(self, events: AnalyzerEvents, loop: asyncio.AbstractEventLoop) -> None: ...

    async def run(
        self, files: Optional[Sequence[str]], reset: bool
    ) -> dict[str, list[Diagnostic]]:
        """Analyze *files* (``None`` = whole project).

        Returns diagnostics per normalized path, including empty lists for
        files that came back clean. Raises ``RunFailedError`` for a failed
        run and ``WorkerCrashedError`` when the worker is gone.
        """
        ...

    def terminate(self, timeout: float = 5.0) -> None: ...


class WatchAdapter(Protocol):
    """Self-driving analyzer that pushes full snapshots via ``on_snapshot``."""

    name: str

    def start(self, events: AnalyzerEvents, loop: asyncio.AbstractEventLoop) -> None: ...

    def terminate(self, timeout: float = 5.0) -> None: ...
