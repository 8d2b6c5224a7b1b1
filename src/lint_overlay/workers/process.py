"""Analyzer execution contexts: one OS process per analyzer.

The parent talks to a worker only through a duplex pipe. A daemon reader
thread blocks on the pipe and forwards every message, and finally the
exit code, to the coordinator's event loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
import multiprocessing
import signal
import threading
from multiprocessing.connection import Connection
from typing import Any, Callable, Optional

from ..exceptions import WorkerCrashedError
from ..logging_config import PACKAGE_LOGGER, setup_worker_logging
from ..models import describe_error

logger = logging.getLogger(__name__)

# Workers are spawned, never forked: the host runs threads (uvicorn, watcher).
_MP_CONTEXT = multiprocessing.get_context("spawn")

MessageHandler = Callable[[dict[str, Any]], None]
ExitHandler = Callable[[Optional[int]], None]


def worker_entry(
    conn: Connection, main: Callable[..., None], *args: Any, log_level: Optional[int] = None
) -> None:
    """Child-side wrapper: report uncaught exceptions as a ``fault`` message.

    The exception is re-raised so the process still exits non-zero.
    """
    # Ctrl+C reaches the whole process group; the host decides when workers stop.
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    signal.signal(signal.SIGTERM, _exit_on_sigterm)
    if log_level is not None:
        setup_worker_logging(log_level)
    try:
        main(conn, *args)
    except Exception as exc:
        try:
            conn.send({"type": "fault", "message": describe_error(exc)})
        except (OSError, ValueError):
            pass
        raise
    finally:
        conn.close()


def _exit_on_sigterm(signum: int, frame: Any) -> None:
    # SystemExit unwinds finally blocks, which stop any analyzer subprocess.
    raise SystemExit(128 + signum)


class WorkerProcess:
    """Parent-side handle on one worker process."""

    def __init__(
        self,
        name: str,
        main: Callable[..., None],
        args: tuple[Any, ...] = (),
    ) -> None:
        self.name = name
        self._main = main
        self._args = args

        self._process: Optional[multiprocessing.process.BaseProcess] = None
        self._conn: Optional[Connection] = None
        self._reader: Optional[threading.Thread] = None
        self._terminating = False

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def exitcode(self) -> Optional[int]:
        return self._process.exitcode if self._process is not None else None

    def is_alive(self) -> bool:
        return self._process is not None and self._process.is_alive()

    def start(
        self,
        loop: asyncio.AbstractEventLoop,
        on_message: MessageHandler,
        on_exit: ExitHandler,
    ) -> None:
        parent_conn, child_conn = _MP_CONTEXT.Pipe(duplex=True)
        self._process = _MP_CONTEXT.Process(
            target=worker_entry,
            args=(child_conn, self._main, *self._args),
            # Spawned children start with unconfigured logging
            kwargs={"log_level": logging.getLogger(PACKAGE_LOGGER).getEffectiveLevel()},
            name=f"lint-overlay-{self.name}",
            daemon=True,
        )
        self._process.start()
        # Only the child keeps its end open, so its death closes the pipe.
        child_conn.close()
        self._conn = parent_conn

        self._reader = threading.Thread(
            target=self._pump,
            args=(loop, on_message, on_exit),
            name=f"lint-overlay-{self.name}-reader",
            daemon=True,
        )
        self._reader.start()
        logger.debug("Started %s worker (pid %s)", self.name, self._process.pid)

    def send(self, msg: dict[str, Any]) -> None:
        if self._conn is None or self._terminating:
            raise WorkerCrashedError(self.name, self.exitcode)
        try:
            self._conn.send(msg)
        except (OSError, ValueError) as exc:
            raise WorkerCrashedError(self.name, self.exitcode) from exc

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop the worker now; escalate to kill if it ignores SIGTERM."""
        self._terminating = True
        process = self._process
        if process is None:
            return
        if process.is_alive():
            process.terminate()
            process.join(timeout)
            if process.is_alive():
                logger.warning("%s worker ignored terminate, killing", self.name)
                process.kill()
                process.join(timeout)
        if self._conn is not None:
            self._conn.close()
        logger.debug("Stopped %s worker", self.name)

    def _pump(
        self,
        loop: asyncio.AbstractEventLoop,
        on_message: MessageHandler,
        on_exit: ExitHandler,
    ) -> None:
        """Reader thread: forward messages until the pipe closes."""
        assert self._conn is not None and self._process is not None
        conn = self._conn
        while True:
            try:
                msg = conn.recv()
            except (EOFError, OSError):
                break
            if not _deliver(loop, on_message, msg):
                return

        self._process.join(timeout=5)
        exitcode = self._process.exitcode
        logger.debug("%s worker pipe closed (exit code %s)", self.name, exitcode)
        _deliver(loop, on_exit, exitcode)


def _deliver(loop: asyncio.AbstractEventLoop, callback: Callable[[Any], None], arg: Any) -> bool:
    try:
        loop.call_soon_threadsafe(callback, arg)
        return True
    except RuntimeError:
        # Event loop already closed: the host is gone.
        return False
