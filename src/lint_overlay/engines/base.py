"""Engine interfaces and executable discovery.

Engines wrap the external analyzers. They run inside worker processes and
must be constructible from a picklable factory (a class or a
``functools.partial`` of one).
"""

from __future__ import annotations

import shlex
import shutil
import sys
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from ..exceptions import AnalyzerUnavailableError
from ..models import Diagnostic

Emit = Callable[[Sequence[Diagnostic]], None]


class BatchEngine(Protocol):
    source: str

    def lint(self, files: Optional[Sequence[str]]) -> dict[str, list[Diagnostic]]:
        """Analyze *files* (``None`` = whole project), keyed by project path."""
        ...


class WatchEngine(Protocol):
    source: str

    def watch(self, emit: Emit) -> None:
        """Block forever, calling *emit* with the full set on every rebuild."""
        ...


def find_executable(project_root: str, tool: str, command: Optional[str] = None) -> list[str]:
    """Locate an analyzer executable.

    An explicit *command* (e.g. ``"npx eslint"``) wins. Otherwise the
    project's ``node_modules/.bin`` is searched before ``PATH``.
    """
    if command:
        argv = shlex.split(command, posix=sys.platform != "win32")
        if not argv or shutil.which(argv[0]) is None:
            raise AnalyzerUnavailableError(tool, searched=command)
        return argv

    bin_dir = Path(project_root) / "node_modules" / ".bin"
    for name in (tool, f"{tool}.cmd"):
        candidate = bin_dir / name
        if candidate.is_file():
            return [str(candidate)]

    found = shutil.which(tool)
    if found is None:
        raise AnalyzerUnavailableError(tool, searched=f"{bin_dir}, PATH")
    return [found]
