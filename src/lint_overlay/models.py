"""Core value types: diagnostics and job requests.

Every analyzer normalizes its output into :class:`Diagnostic`. Requests
flowing from the file watcher and the gateway into the coordinator are one
of :class:`RunAll`, :class:`RunFiles` or :class:`Unlink`.
"""

from __future__ import annotations

import os
import traceback
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Union

# Sentinel file for diagnostics that cannot be attributed to a file
GLOBAL_FILE = "Global"


class Severity(str, Enum):
    """Diagnostic severity level."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A single diagnostic reported by one analyzer."""

    file: str
    line: int
    message: str
    source: str
    severity: Severity = Severity.ERROR

    @property
    def is_global(self) -> bool:
        return self.file == GLOBAL_FILE

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "message": self.message,
            "source": self.source,
            "severity": self.severity.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Diagnostic:
        return cls(
            file=data.get("file") or GLOBAL_FILE,
            line=int(data.get("line") or 0),
            message=str(data.get("message", "")),
            source=str(data.get("source", "")),
            severity=Severity(data.get("severity", "error")),
        )


def global_diagnostic(
    source: str, message: str, severity: Severity = Severity.ERROR
) -> Diagnostic:
    """Build a diagnostic that is not attached to any file."""
    return Diagnostic(file=GLOBAL_FILE, line=0, message=message, source=source, severity=severity)


def normalize_path(path: str | os.PathLike[str], root: str | os.PathLike[str]) -> str:
    """Return *path* relative to *root* using forward slashes."""
    rel = os.path.relpath(os.path.abspath(path), os.path.abspath(root))
    return Path(rel).as_posix()


def describe_error(exc: BaseException) -> str:
    """Short failure text: the message plus the innermost traceback frame."""
    message = str(exc) or type(exc).__name__
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if not frames:
        return message
    last = frames[-1]
    return f"{message}\n  at {last.filename}:{last.lineno} in {last.name}"


def encode_diagnostics(diagnostics: Iterable[Diagnostic]) -> list[dict[str, Any]]:
    return [d.to_dict() for d in diagnostics]


def decode_diagnostics(items: Iterable[dict[str, Any]]) -> list[Diagnostic]:
    return [Diagnostic.from_dict(item) for item in items]


# ── Job requests ─────────────────────────────────────────────────


@dataclass(frozen=True)
class RunAll:
    """Rescan the whole project, resetting the analyzer's cache."""


@dataclass(frozen=True)
class RunFiles:
    """Re-analyze an explicit set of files (absolute paths)."""

    files: frozenset[str]

    @classmethod
    def of(cls, *paths: str) -> RunFiles:
        return cls(files=frozenset(paths))


@dataclass(frozen=True)
class Unlink:
    """A file was deleted; drop its cache entry."""

    path: str


RunRequest = Union[RunAll, RunFiles]
JobRequest = Union[RunAll, RunFiles, Unlink]
