"""Observer connections and snapshot delivery."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Sequence

from ..models import Diagnostic, encode_diagnostics

logger = logging.getLogger(__name__)


def update_message(diagnostics: Sequence[Diagnostic]) -> dict[str, Any]:
    """The single push message type: the full current diagnostic list."""
    return {"type": "update", "errors": encode_diagnostics(diagnostics)}


class NotificationGateway:
    """Holds the last published snapshot and the connected observers.

    Each observer is represented by a queue (``asyncio.Queue`` in the
    server) drained by its WebSocket handler. Publishing with no observers
    is a no-op; nothing is kept for observers that connect later except
    the latest snapshot, which is replayed on connect.
    """

    def __init__(self) -> None:
        self._snapshot: list[Diagnostic] = []
        self._listeners: list[Any] = []
        self._connect_hooks: list[Callable[[], None]] = []

    @property
    def snapshot(self) -> list[Diagnostic]:
        return list(self._snapshot)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def on_connect(self, hook: Callable[[], None]) -> None:
        """Register a callback run after every new observer connection."""
        self._connect_hooks.append(hook)

    def publish(self, snapshot: Sequence[Diagnostic]) -> None:
        self._snapshot = list(snapshot)
        if not self._listeners:
            return
        message = update_message(self._snapshot)
        for queue in list(self._listeners):
            self._send_to_queue(queue, message)

    def connect(self, queue: Any) -> None:
        """Register an observer, replay the current state, then run hooks."""
        self._listeners.append(queue)
        self._send_to_queue(queue, update_message(self._snapshot))
        for hook in self._connect_hooks:
            try:
                hook()
            except Exception:
                logger.exception("Observer connect hook failed")

    def disconnect(self, queue: Any) -> None:
        try:
            self._listeners.remove(queue)
        except ValueError:
            pass

    def close(self) -> int:
        """Drop every observer. Returns how many were connected."""
        count = len(self._listeners)
        self._listeners.clear()
        return count

    def _send_to_queue(self, queue: Any, msg: dict[str, Any]) -> bool:
        """Send with overflow handling.

        Every update replaces the observer's whole state, so when a slow
        observer's queue is full the stale updates are drained first.
        """
        try:
            maxsize = getattr(queue, "maxsize", 0)
            if maxsize and queue.qsize() >= maxsize:
                drained = 0
                while not queue.empty():
                    try:
                        queue.get_nowait()
                        drained += 1
                    except asyncio.QueueEmpty:
                        break
                if drained:
                    logger.debug("Drained %d stale messages from observer queue", drained)
            queue.put_nowait(msg)
            return True
        except asyncio.QueueFull:
            logger.warning("Observer queue full even after drain - client may be disconnected")
            return False
