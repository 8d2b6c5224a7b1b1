"""
lint-overlay - live, merged diagnostics from slow analyzers

Runs ESLint and the TypeScript compiler in worker processes, keeps a
per-file diagnostic cache for each, and pushes one merged snapshot to
every connected browser overlay.
"""

__version__ = "0.1.0"

from .core import OverlayCoordinator
from .models import Diagnostic, RunAll, RunFiles, Severity, Unlink

__all__ = [
    "Diagnostic",
    "OverlayCoordinator",
    "RunAll",
    "RunFiles",
    "Severity",
    "Unlink",
]
