"""TypeScript's compiler in watch mode as a self-driving engine."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from pathlib import Path
from typing import Optional

from ..exceptions import AnalysisError
from ..models import Diagnostic, Severity, global_diagnostic, normalize_path
from .base import Emit, find_executable

logger = logging.getLogger(__name__)

# `--pretty false` output shapes
_FILE_DIAG = re.compile(
    r"^(?P<file>.+?)\((?P<line>\d+),(?P<col>\d+)\): (?P<sev>error|warning) TS\d+: (?P<msg>.*)$"
)
_GLOBAL_DIAG = re.compile(r"^(?P<sev>error|warning) TS\d+: (?P<msg>.*)$")
_CYCLE_START = re.compile(r"Starting (compilation in watch mode|incremental compilation)")
_CYCLE_END = re.compile(r"Found \d+ errors?\b")


def find_config_file(start: Path, name: str) -> Optional[Path]:
    """Search *start* and its parents for *name*."""
    for directory in (start, *start.parents):
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def resolve_tsconfig(project_root: str, tsconfig_path: str = "") -> Optional[Path]:
    """Locate the tsconfig to use, or None when there is none.

    An explicit path is taken as is (absolute, or relative to the root);
    failing that it is searched for by name upward from the root. Without
    an explicit path ``tsconfig.app.json`` is preferred when it sits at the
    root, then ``tsconfig.json`` is searched upward.
    """
    root = Path(project_root).resolve()
    tsconfig_path = tsconfig_path.strip()

    if tsconfig_path:
        explicit = Path(tsconfig_path)
        if not explicit.is_absolute():
            explicit = root / explicit
        if explicit.is_file():
            return explicit
        return find_config_file(root, tsconfig_path)

    name = "tsconfig.app.json" if (root / "tsconfig.app.json").is_file() else "tsconfig.json"
    return find_config_file(root, name)


def missing_config_message(tsconfig_path: str = "") -> str:
    if tsconfig_path.strip():
        return f"tsconfig not found: {tsconfig_path.strip()}"
    return "tsconfig not found: tsconfig.app.json or tsconfig.json"


class TscOutputParser:
    """Incremental parser for ``tsc --pretty false`` output.

    :meth:`feed` returns the complete diagnostic list when a compile cycle
    finishes ("Found N errors"), otherwise None. Indented lines continue
    the previous diagnostic's message.
    """

    def __init__(self, project_root: str, source: str = "TS") -> None:
        self.project_root = project_root
        self.source = source
        self._pending: list[dict] = []

    def feed(self, line: str) -> Optional[list[Diagnostic]]:
        line = line.rstrip("\r\n")
        if not line.strip():
            return None

        if _CYCLE_START.search(line):
            self._pending = []
            return None
        if _CYCLE_END.search(line):
            return self.finish()

        match = _FILE_DIAG.match(line)
        if match:
            path = os.path.join(self.project_root, match["file"])
            self._pending.append(
                {
                    "file": normalize_path(path, self.project_root),
                    "line": int(match["line"]),
                    "severity": match["sev"],
                    "lines": [match["msg"]],
                }
            )
            return None

        match = _GLOBAL_DIAG.match(line)
        if match:
            self._pending.append(
                {"file": None, "line": 0, "severity": match["sev"], "lines": [match["msg"]]}
            )
            return None

        if line[:1].isspace() and self._pending:
            self._pending[-1]["lines"].append(line.strip())
        else:
            logger.debug("tsc: %s", line)
        return None

    def finish(self) -> list[Diagnostic]:
        diagnostics = []
        for item in self._pending:
            message = "\n".join(item["lines"])
            severity = Severity(item["severity"])
            if item["file"] is None:
                diagnostics.append(global_diagnostic(self.source, message, severity))
            else:
                diagnostics.append(
                    Diagnostic(
                        file=item["file"],
                        line=item["line"],
                        message=message,
                        source=self.source,
                        severity=severity,
                    )
                )
        self._pending = []
        return diagnostics


class TscWatchEngine:
    """Wraps ``tsc --noEmit --watch`` and reports each rebuild in full."""

    source = "TS"

    def __init__(
        self,
        project_root: str,
        tsconfig_path: str = "",
        command: Optional[str] = None,
    ) -> None:
        self.project_root = str(Path(project_root).resolve())
        self.tsconfig_path = tsconfig_path
        self.command = command

    def _argv(self, config: Path, watch: bool) -> list[str]:
        argv = [*find_executable(self.project_root, "tsc", self.command), "--noEmit"]
        if watch:
            argv += ["--watch", "--preserveWatchOutput"]
        return argv + ["--pretty", "false", "-p", str(config)]

    def watch(self, emit: Emit) -> None:
        config = resolve_tsconfig(self.project_root, self.tsconfig_path)
        if config is None:
            # Static condition for the session: report once and stop.
            emit([global_diagnostic(self.source, missing_config_message(self.tsconfig_path))])
            return

        parser = TscOutputParser(self.project_root, self.source)
        proc = subprocess.Popen(
            self._argv(config, watch=True),
            cwd=self.project_root,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
            # Ctrl+C in the terminal must not end the watch behind the host's back
            start_new_session=True,
        )
        logger.info("tsc watching %s (pid %d)", config, proc.pid)
        try:
            assert proc.stdout is not None
            for line in proc.stdout:
                snapshot = parser.feed(line)
                if snapshot is not None:
                    emit(snapshot)
        finally:
            if proc.poll() is None:
                proc.terminate()
                try:
                    proc.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    proc.kill()
        raise AnalysisError(f"tsc --watch exited with code {proc.returncode}")

    def check(self) -> list[Diagnostic]:
        """One non-watch compilation, for one-shot use."""
        config = resolve_tsconfig(self.project_root, self.tsconfig_path)
        if config is None:
            return [global_diagnostic(self.source, missing_config_message(self.tsconfig_path))]

        proc = subprocess.run(
            self._argv(config, watch=False),
            cwd=self.project_root,
            capture_output=True,
            text=True,
        )
        parser = TscOutputParser(self.project_root, self.source)
        completed: Optional[list[Diagnostic]] = None
        for line in proc.stdout.splitlines():
            snapshot = parser.feed(line)
            if snapshot is not None:
                completed = snapshot
        # Without a summary line the diagnostics are still pending
        return completed if completed is not None else parser.finish()
