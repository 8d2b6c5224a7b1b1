"""Tests for server.gateway.NotificationGateway."""

import asyncio

from lint_overlay.models import Diagnostic, Severity
from lint_overlay.server.gateway import NotificationGateway, update_message


def d(file="src/a.js", line=1):
    return Diagnostic(file=file, line=line, message="m", source="ESLint")


class TestUpdateMessage:
    def test_shape(self):
        msg = update_message([Diagnostic("src/a.js", 2, "x", "TS", Severity.WARNING)])
        assert msg == {
            "type": "update",
            "errors": [
                {"file": "src/a.js", "line": 2, "message": "x", "source": "TS", "severity": "warning"}
            ],
        }

    def test_empty(self):
        assert update_message([]) == {"type": "update", "errors": []}


class TestNotificationGateway:
    def test_initial_snapshot_empty(self):
        gateway = NotificationGateway()
        assert gateway.snapshot == []
        assert gateway.listener_count == 0

    def test_publish_without_observers_keeps_snapshot(self):
        gateway = NotificationGateway()
        gateway.publish([d()])
        assert gateway.snapshot == [d()]

    def test_publish_replaces(self):
        gateway = NotificationGateway()
        gateway.publish([d("a")])
        gateway.publish([d("b")])
        assert gateway.snapshot == [d("b")]

    def test_snapshot_is_a_copy(self):
        gateway = NotificationGateway()
        gateway.publish([d()])
        gateway.snapshot.clear()
        assert gateway.snapshot == [d()]

    def test_connect_replays_last_snapshot(self):
        gateway = NotificationGateway()
        gateway.publish([d()])
        q: asyncio.Queue = asyncio.Queue()
        gateway.connect(q)
        assert q.get_nowait() == update_message([d()])

    def test_connect_replays_empty_snapshot(self):
        gateway = NotificationGateway()
        q: asyncio.Queue = asyncio.Queue()
        gateway.connect(q)
        assert q.get_nowait() == {"type": "update", "errors": []}

    def test_listener_receives_update(self):
        gateway = NotificationGateway()
        q: asyncio.Queue = asyncio.Queue()
        gateway.connect(q)
        q.get_nowait()

        gateway.publish([d()])
        assert q.get_nowait()["errors"][0]["file"] == "src/a.js"

    def test_disconnect(self):
        gateway = NotificationGateway()
        q: asyncio.Queue = asyncio.Queue()
        gateway.connect(q)
        gateway.disconnect(q)
        q.get_nowait()

        gateway.publish([d()])
        assert q.empty()
        assert gateway.listener_count == 0

    def test_disconnect_unknown_queue_is_noop(self):
        gateway = NotificationGateway()
        gateway.disconnect(asyncio.Queue())

    def test_connect_hooks_run_after_replay(self):
        gateway = NotificationGateway()
        q: asyncio.Queue = asyncio.Queue()
        seen = []
        gateway.on_connect(lambda: seen.append(q.qsize()))
        gateway.connect(q)
        assert seen == [1]

    def test_failing_hook_does_not_break_connect(self):
        gateway = NotificationGateway()

        def broken():
            raise RuntimeError("hook failed")

        gateway.on_connect(broken)
        q: asyncio.Queue = asyncio.Queue()
        gateway.connect(q)
        assert gateway.listener_count == 1

    def test_full_queue_drops_stale_updates(self):
        gateway = NotificationGateway()
        q: asyncio.Queue = asyncio.Queue(maxsize=2)
        gateway.connect(q)
        for line in range(1, 5):
            gateway.publish([d(line=line)])

        messages = []
        while not q.empty():
            messages.append(q.get_nowait())
        assert messages[-1]["errors"][0]["line"] == 4
        assert len(messages) <= 2

    def test_close_drops_all_observers(self):
        gateway = NotificationGateway()
        gateway.connect(asyncio.Queue())
        gateway.connect(asyncio.Queue())
        assert gateway.close() == 2
        assert gateway.listener_count == 0
