"""The coordination core.

:class:`OverlayCoordinator` is the lifecycle-scoped context object that
owns every analyzer channel (adapter + cache + coalescer), the crash
supervisor and the link to the notification gateway. All of its state is
touched from one asyncio event loop; adapters hand their events over with
``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from ..exceptions import RunFailedError, WorkerCrashedError
from ..models import (
    Diagnostic,
    JobRequest,
    RunAll,
    RunFiles,
    RunRequest,
    Unlink,
    describe_error,
    global_diagnostic,
    normalize_path,
)
from ..workers.base import BatchAdapter, WatchAdapter
from .aggregator import merge
from .cache import DiagnosticCache
from .coalescer import JobCoalescer
from .supervisor import CrashSupervisor

if TYPE_CHECKING:
    from ..server.gateway import NotificationGateway

logger = logging.getLogger(__name__)


@dataclass
class AnalyzerChannel:
    """Everything the core tracks for one registered analyzer."""

    name: str
    adapter: Union[BatchAdapter, WatchAdapter]
    batch: bool
    cache: DiagnosticCache = field(default_factory=DiagnosticCache)
    coalescer: JobCoalescer = field(default_factory=JobCoalescer)
    # Failure notice shown instead of the (retained) cache after a failed run
    notice: Optional[Diagnostic] = None

    def contribution(self) -> list[Diagnostic]:
        if self.notice is not None:
            return [self.notice]
        return self.cache.flatten()


class OverlayCoordinator:
    """Routes job requests to analyzers and republishes merged snapshots."""

    def __init__(self, project_root: str, gateway: NotificationGateway) -> None:
        self.project_root = str(Path(project_root).resolve())
        self.gateway = gateway
        self.supervisor = CrashSupervisor(self._on_crash)

        self._channels: dict[str, AnalyzerChannel] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closed = False

        gateway.on_connect(self._on_observer_connect)

    # ── Registration ─────────────────────────────────────────────

    def add_batch_analyzer(self, adapter: BatchAdapter) -> AnalyzerChannel:
        return self._register(adapter, batch=True)

    def add_watch_analyzer(self, adapter: WatchAdapter) -> AnalyzerChannel:
        return self._register(adapter, batch=False)

    def _register(self, adapter: Any, batch: bool) -> AnalyzerChannel:
        if adapter.name in self._channels:
            raise ValueError(f"Analyzer already registered: {adapter.name}")
        channel = AnalyzerChannel(name=adapter.name, adapter=adapter, batch=batch)
        self._channels[adapter.name] = channel
        return channel

    @property
    def analyzers(self) -> list[str]:
        return list(self._channels)

    def channel(self, name: str) -> AnalyzerChannel:
        return self._channels[name]

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        """Start every worker and queue the initial full scan."""
        self._loop = asyncio.get_running_loop()
        for channel in self._channels.values():
            logger.info("Starting %s analyzer", channel.name)
            channel.adapter.start(self, self._loop)
        # Requests deferred before start are escalated into the initial scan
        for channel in self._batch_channels(None):
            channel.coalescer.submit(RunAll())
            self._schedule(channel)

    def close(self, timeout: float = 5.0) -> None:
        """Terminate all workers synchronously. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.supervisor.stop()

        for task in list(self._tasks):
            task.cancel()
        for channel in self._channels.values():
            try:
                channel.adapter.terminate(timeout)
            except Exception:
                logger.exception("Failed to terminate %s worker", channel.name)

    @property
    def closed(self) -> bool:
        return self._closed

    async def wait_idle(self) -> None:
        """Wait until no batch analyzer has a run in flight or pending."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Requests ─────────────────────────────────────────────────

    def submit(self, request: JobRequest, analyzer: Optional[str] = None) -> None:
        """Hand *request* to one batch analyzer, or all of them.

        Never blocks and never raises.
        """
        try:
            for channel in self._batch_channels(analyzer):
                if isinstance(request, Unlink):
                    self._apply_unlink(channel, request.path)
                else:
                    self._offer(channel, request)
        except Exception:
            logger.exception("Failed to submit %r", request)

    def _batch_channels(self, analyzer: Optional[str]) -> list[AnalyzerChannel]:
        channels = [c for c in self._channels.values() if c.batch]
        if analyzer is not None:
            channels = [c for c in channels if c.name == analyzer]
        return [c for c in channels if not self.supervisor.is_crashed(c.name)]

    def _apply_unlink(self, channel: AnalyzerChannel, path: str) -> None:
        key = normalize_path(path, self.project_root)
        channel.cache.remove(key)
        channel.notice = None
        logger.debug("%s: dropped %s", channel.name, key)
        self._publish()

    def _offer(self, channel: AnalyzerChannel, request: RunRequest) -> None:
        if self._closed:
            return
        if channel.coalescer.submit(request):
            if self._loop is None:
                logger.debug("%s: not started yet, run deferred", channel.name)
                return
            self._schedule(channel)

    def _schedule(self, channel: AnalyzerChannel) -> None:
        assert self._loop is not None
        task = self._loop.create_task(self._drain(channel), name=f"lint-overlay-{channel.name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _drain(self, channel: AnalyzerChannel) -> None:
        """Run requests one at a time until the pending slot is empty."""
        while True:
            request = channel.coalescer.begin()
            if request is None:
                return
            try:
                await self._execute(channel, request)
            finally:
                more = channel.coalescer.finish()
            if not more or self._closed:
                return

    async def _execute(self, channel: AnalyzerChannel, request: RunRequest) -> None:
        files: Optional[list[str]] = None
        if isinstance(request, RunFiles):
            files = sorted(request.files)
        reset = files is None
        logger.debug("%s: run %s", channel.name, "all" if reset else files)

        adapter: BatchAdapter = channel.adapter  # type: ignore[assignment]
        try:
            results = await adapter.run(files, reset)
        except WorkerCrashedError:
            # The supervisor publishes the crash; nothing to apply.
            channel.coalescer.clear()
            return
        except RunFailedError as exc:
            self._fail_run(channel, exc.reason)
            return
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._fail_run(channel, f"Run failed: {describe_error(exc)}")
            return

        if self.supervisor.is_crashed(channel.name):
            return
        if reset:
            channel.cache.clear()
        channel.cache.apply(results)
        channel.notice = None
        logger.debug("%s: %d file(s) with diagnostics", channel.name, len(channel.cache))
        self._publish()

    def _fail_run(self, channel: AnalyzerChannel, reason: str) -> None:
        logger.warning("%s run failed: %s", channel.name, reason)
        channel.notice = global_diagnostic(channel.name, reason)
        self._publish()

    # ── Adapter events ───────────────────────────────────────────

    def on_snapshot(self, name: str, diagnostics: Sequence[Diagnostic]) -> None:
        channel = self._channels.get(name)
        if channel is None or self.supervisor.is_crashed(name):
            return
        channel.cache.replace_all(diagnostics)
        channel.notice = None
        self._publish()

    def on_fault(self, name: str, message: str) -> None:
        self.supervisor.fault(name, message)

    def on_exit(self, name: str, exitcode: Optional[int]) -> None:
        self.supervisor.exited(name, exitcode)

    def _on_crash(self, name: str, diagnostic: Diagnostic) -> None:
        channel = self._channels.get(name)
        if channel is None:
            return
        channel.cache.replace_all([diagnostic])
        channel.notice = None
        channel.coalescer.clear()
        self._publish()

    def _on_observer_connect(self) -> None:
        self.submit(RunAll())

    # ── Aggregation ──────────────────────────────────────────────

    def snapshot(self) -> list[Diagnostic]:
        return merge(self._channels.values())

    def _publish(self) -> None:
        self.gateway.publish(self.snapshot())
