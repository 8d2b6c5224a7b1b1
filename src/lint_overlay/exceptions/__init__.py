"""Exception hierarchy for lint-overlay."""

from .analysis import (
    AnalysisError,
    AnalyzerUnavailableError,
    RunFailedError,
    WorkerCrashedError,
)
from .base import LintOverlayError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
)

__all__ = [
    "LintOverlayError",
    "AnalysisError",
    "AnalyzerUnavailableError",
    "RunFailedError",
    "WorkerCrashedError",
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidPathError",
]
