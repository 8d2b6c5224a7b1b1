"""File watcher that turns source changes into job requests."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol

from watchfiles import Change, awatch

from ..models import JobRequest, RunFiles, Unlink

logger = logging.getLogger(__name__)

# Directories never worth watching
IGNORED_DIRS = frozenset(
    {
        "node_modules",
        "__pycache__",
        "dist",
        "build",
        "coverage",
        "venv",
    }
)

# Debounce: watchfiles groups changes arriving within this window
DEBOUNCE_MS = 100


class RequestSink(Protocol):
    def submit(self, request: JobRequest) -> None: ...


def is_target(path: str, scope_dir: Path, extensions: Iterable[str]) -> bool:
    """True when *path* has an allowed extension and lives in *scope_dir*."""
    p = Path(path)
    if p.suffix not in set(extensions):
        return False
    try:
        rel = p.resolve().relative_to(scope_dir.resolve())
    except ValueError:
        return False
    for part in rel.parts[:-1]:
        if part.startswith(".") or part in IGNORED_DIRS:
            return False
    return True


class SourceFilter:
    """watchfiles filter: only changes inside the analysis scope."""

    def __init__(self, scope_dir: Path, extensions: Iterable[str]) -> None:
        self.scope_dir = scope_dir
        self.extensions = tuple(extensions)

    def __call__(self, change: Change, path: str) -> bool:
        return is_target(path, self.scope_dir, self.extensions)


def to_request(change: Change, path: str) -> JobRequest:
    if change == Change.deleted:
        return Unlink(path)
    return RunFiles.of(path)


class FileWatcher:
    """Watches the analysis scope and forwards each change to the coordinator.

    Runs as a task on the coordinator's event loop, so ``submit`` is called
    from the same control flow that owns the caches.
    """

    def __init__(self, scope_dir: Path, extensions: Iterable[str], sink: RequestSink) -> None:
        self.scope_dir = scope_dir.resolve()
        self.filter = SourceFilter(self.scope_dir, extensions)
        self.sink = sink

        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        """Start watching on the running event loop."""
        self._task = asyncio.get_running_loop().create_task(
            self._watch_loop(), name="lint-overlay-watcher"
        )

    async def stop(self) -> None:
        logger.debug("Stopping file watcher...")
        self._stop_event.set()
        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=5)
            except asyncio.TimeoutError:
                logger.warning("File watcher did not exit within 5 seconds")
            except asyncio.CancelledError:
                pass

    def handle_changes(self, changes: Iterable[tuple[Change, str]]) -> int:
        """Submit one request per change, in order. Returns how many."""
        count = 0
        for change, path in changes:
            if not self.filter(change, path):
                continue
            self.sink.submit(to_request(change, path))
            count += 1
        return count

    async def _watch_loop(self) -> None:
        if not self.scope_dir.is_dir():
            logger.warning("%s does not exist; file watching disabled", self.scope_dir)
            return

        logger.info("Watching %s for changes", self.scope_dir)
        async for changes in awatch(
            self.scope_dir,
            stop_event=self._stop_event,
            debounce=DEBOUNCE_MS,
            watch_filter=self.filter,
        ):
            count = self.handle_changes(sorted(changes, key=lambda c: c[1]))
            logger.debug("Detected %d relevant change(s)", count)
