"""PID file and port management for the overlay server.

The PID file under ``<project>/.lint-overlay/`` marks the project as served;
a second ``serve`` for the same project points at the live instance instead
of starting another. Files left behind by a dead server are removed on sight.
"""

from __future__ import annotations

import json
import logging
import os
import socket
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5174
PORT_SEARCH_SPAN = 20

STATE_DIR = ".lint-overlay"


@dataclass
class ServerInfo:
    """What a running server records about itself."""

    pid: int
    port: int
    project_path: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ServerInfo:
        return cls(pid=int(data["pid"]), port=int(data["port"]), project_path=str(data["project_path"]))


def pid_file_path(project_root: str) -> Path:
    return Path(project_root) / STATE_DIR / "server.pid"


def is_process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Someone else's process
        return True
    except OSError:
        return False
    return True


def is_port_in_use(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(1)
        return sock.connect_ex((host, port)) == 0


def read_pid_file(project_root: str) -> Optional[ServerInfo]:
    """The recorded server, or None when there is no readable record."""
    path = pid_file_path(project_root)
    try:
        raw = path.read_text()
    except FileNotFoundError:
        return None
    try:
        return ServerInfo.from_dict(json.loads(raw))
    except (ValueError, KeyError, TypeError) as exc:
        logger.warning("Ignoring unreadable PID file %s: %s", path, exc)
        return None


def write_pid_file(project_root: str, port: int) -> Path:
    path = pid_file_path(project_root)
    path.parent.mkdir(parents=True, exist_ok=True)
    info = ServerInfo(pid=os.getpid(), port=port, project_path=str(Path(project_root).resolve()))

    # Readers never see a half-written record
    staging = path.with_suffix(".tmp")
    staging.write_text(json.dumps(info.to_dict(), indent=2) + "\n")
    os.replace(staging, path)
    logger.debug("Recorded server pid %d on port %d in %s", info.pid, port, path)
    return path


def remove_pid_file(project_root: str) -> bool:
    try:
        pid_file_path(project_root).unlink()
    except FileNotFoundError:
        return False
    return True


def _stale_reason(info: ServerInfo, host: str) -> Optional[str]:
    if not is_process_alive(info.pid):
        return f"process {info.pid} is gone"
    if not is_port_in_use(host, info.port):
        return f"nothing listens on port {info.port}"
    return None


def validate_existing_server(project_root: str, host: str) -> Optional[ServerInfo]:
    """The live server already serving this project, if any.

    A record whose process died or whose port is no longer bound is deleted.
    """
    info = read_pid_file(project_root)
    if info is None:
        return None

    reason = _stale_reason(info, host)
    if reason is not None:
        logger.info("Removing stale PID file (%s)", reason)
        remove_pid_file(project_root)
        return None
    return info


def find_available_port(host: str, preferred_port: int = DEFAULT_PORT) -> int:
    """First free port in ``preferred_port .. preferred_port + PORT_SEARCH_SPAN``.

    Raises RuntimeError if none is free.
    """
    candidates = range(preferred_port, preferred_port + PORT_SEARCH_SPAN + 1)
    for port in candidates:
        if not is_port_in_use(host, port):
            return port
    raise RuntimeError(
        f"No available ports in range {candidates[0]}-{candidates[-1]}; "
        "pass --port or stop another server."
    )
