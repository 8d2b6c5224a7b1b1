"""Analyzer-related exceptions: engine failures, failed runs, dead workers."""

from typing import Optional

from .base import LintOverlayError


class AnalysisError(LintOverlayError):
    """Raised by an engine when one analysis run cannot complete."""

    pass


class AnalyzerUnavailableError(AnalysisError):
    """Raised when the external analyzer executable cannot be located."""

    def __init__(self, tool: str, searched: Optional[str] = None):
        details = {"tool": tool}
        if searched:
            details["searched"] = searched
        super().__init__(f"{tool} executable not found", details=details)
        self.tool = tool


class RunFailedError(AnalysisError):
    """A batch worker answered a run request with a failure."""

    def __init__(self, analyzer: str, reason: str):
        super().__init__(reason)
        self.analyzer = analyzer
        self.reason = reason


class WorkerCrashedError(LintOverlayError):
    """The analyzer's worker process is gone."""

    def __init__(self, analyzer: str, exitcode: Optional[int] = None):
        details = {"analyzer": analyzer}
        if exitcode is not None:
            details["exitcode"] = str(exitcode)
        super().__init__(f"{analyzer} worker is not running", details=details)
        self.analyzer = analyzer
        self.exitcode = exitcode
