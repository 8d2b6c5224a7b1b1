"""Per-analyzer job coalescing.

Each batch analyzer owns one :class:`JobCoalescer`: at most one run in
flight plus a single pending slot. Rules for a request arriving while
another one is pending:

    pending RunAll   + RunFiles  -> dropped (the full rescan covers it)
    pending RunFiles + RunFiles  -> replaced (only the newest batch survives)
    pending RunFiles + RunAll    -> replaced (escalation)
    pending RunAll   + RunAll    -> replaced

File sets are never merged. ``Unlink`` requests never reach the coalescer.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ..models import RunAll, RunFiles, RunRequest

logger = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"


class JobCoalescer:
    """Small state machine: ``Idle`` -> ``Pending`` -> ``Running`` -> ``Idle``.

    While ``Running`` a further request may sit in the pending slot; it is
    handed out by :meth:`begin` once the current run :meth:`finish`-es.
    """

    def __init__(self) -> None:
        self._running: Optional[RunRequest] = None
        self._pending: Optional[RunRequest] = None

    @property
    def phase(self) -> Phase:
        if self._running is not None:
            return Phase.RUNNING
        if self._pending is not None:
            return Phase.PENDING
        return Phase.IDLE

    @property
    def running(self) -> Optional[RunRequest]:
        return self._running

    @property
    def pending(self) -> Optional[RunRequest]:
        return self._pending

    def submit(self, request: RunRequest) -> bool:
        """Offer *request* to the pending slot.

        Returns True when the analyzer was idle, i.e. the caller must
        schedule a run.
        """
        was_idle = self.phase is Phase.IDLE

        if isinstance(self._pending, RunAll) and isinstance(request, RunFiles):
            logger.debug("Dropping file run, full rescan already pending")
            return False

        self._pending = request
        return was_idle

    def begin(self) -> Optional[RunRequest]:
        """Move the pending request into the running slot and return it."""
        if self._running is not None or self._pending is None:
            return None
        self._running, self._pending = self._pending, None
        return self._running

    def finish(self) -> bool:
        """Mark the in-flight run complete. True if another run is due."""
        self._running = None
        return self._pending is not None

    def clear(self) -> None:
        """Forget any pending request (the analyzer is gone)."""
        self._pending = None
