"""ESLint as a batch engine (``eslint --format json``)."""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Optional, Sequence

from ..exceptions import AnalysisError
from ..models import Diagnostic, Severity, normalize_path
from .base import find_executable

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")

# eslint exits 0 (clean) or 1 (lint problems); anything else is a failure
_OK_EXIT_CODES = (0, 1)


def project_glob(root_dir: str, extensions: Sequence[str]) -> str:
    """Glob covering every analyzable file below *root_dir*."""
    exts = [ext.lstrip(".") for ext in extensions]
    pattern = exts[0] if len(exts) == 1 else "{" + ",".join(exts) + "}"
    return f"{root_dir}/**/*.{pattern}"


def parse_eslint_report(report: str, project_root: str, source: str = "ESLint") -> dict[str, list[Diagnostic]]:
    """Convert ESLint's JSON formatter output into per-file diagnostics.

    Every reported file gets an entry; clean files map to an empty list.
    """
    try:
        data: list[dict[str, Any]] = json.loads(report or "[]")
    except json.JSONDecodeError as exc:
        raise AnalysisError(f"Unreadable eslint output: {exc}")

    results: dict[str, list[Diagnostic]] = {}
    for entry in data:
        key = normalize_path(entry["filePath"], project_root)
        results[key] = [
            Diagnostic(
                file=key,
                line=int(m.get("line") or 0),
                message=str(m.get("message", "")),
                source=source,
                severity=Severity.ERROR if m.get("severity") == 2 else Severity.WARNING,
            )
            for m in entry.get("messages", [])
            if (m.get("severity") or 0) > 0
        ]
    return results


class EslintEngine:
    """Runs the project's ESLint over explicit files or the whole tree.

    Construction locates the executable; it is done lazily inside the
    worker so discovery cost is only paid when linting is requested.
    """

    source = "ESLint"

    def __init__(
        self,
        project_root: str,
        root_dir: str = "src",
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        command: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.project_root = str(Path(project_root).resolve())
        self.root_dir = root_dir
        self.extensions = tuple(extensions)
        self.timeout = timeout
        self.argv = find_executable(self.project_root, "eslint", command)

    def lint(self, files: Optional[Sequence[str]]) -> dict[str, list[Diagnostic]]:
        targets = [project_glob(self.root_dir, self.extensions)] if files is None else list(files)
        if not targets:
            return {}

        cmd = [*self.argv, "--format", "json", "--no-error-on-unmatched-pattern", *targets]
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                cwd=self.project_root,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                # Interrupts reach the host only; it stops eslint itself
                start_new_session=True,
            )
        except subprocess.TimeoutExpired:
            raise AnalysisError(f"eslint timed out after {self.timeout}s")

        if proc.returncode not in _OK_EXIT_CODES:
            detail = (proc.stderr or proc.stdout).strip()
            raise AnalysisError(
                f"eslint exited with code {proc.returncode}",
                details={"stderr": detail[:500]} if detail else None,
            )
        return parse_eslint_report(proc.stdout, self.project_root, self.source)
