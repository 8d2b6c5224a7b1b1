"""Crash supervision for analyzer worker processes.

A worker that raises an uncaught exception, or exits with a non-zero
code, is considered dead for the rest of the session. The supervisor turns
the first such report into one ``Global`` error diagnostic and hands it to
the coordinator, which replaces that analyzer's cache with it. Nothing is
restarted.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..models import Diagnostic, global_diagnostic

logger = logging.getLogger(__name__)

CrashHandler = Callable[[str, Diagnostic], None]


class CrashSupervisor:
    """Tracks which analyzers have crashed and reports each crash once."""

    def __init__(self, on_crash: CrashHandler) -> None:
        self._on_crash = on_crash
        self._crashed: dict[str, Diagnostic] = {}
        self._stopping = False

    def is_crashed(self, name: str) -> bool:
        return name in self._crashed

    def failure_for(self, name: str) -> Optional[Diagnostic]:
        return self._crashed.get(name)

    def stop(self) -> None:
        """Host is shutting down; worker exits from here on are expected."""
        self._stopping = True

    def fault(self, name: str, message: str) -> None:
        """Worker reported an uncaught exception just before dying."""
        self._report(name, f"{name} worker error: {message}")

    def exited(self, name: str, exitcode: Optional[int]) -> None:
        """Worker process ended. A clean exit (code 0) is not a crash."""
        if exitcode == 0:
            logger.info("%s worker exited cleanly", name)
            return
        self._report(name, f"{name} worker died (code {exitcode})")

    def _report(self, name: str, message: str) -> None:
        if self._stopping:
            logger.debug("Ignoring %s worker failure during shutdown: %s", name, message)
            return
        if name in self._crashed:
            logger.debug("%s already marked as crashed, ignoring: %s", name, message)
            return

        diagnostic = global_diagnostic(name, message)
        self._crashed[name] = diagnostic
        logger.error("%s", message)
        self._on_crash(name, diagnostic)
