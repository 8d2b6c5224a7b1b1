"""Coordination core: coalescing, caching, merging and crash supervision."""

from .aggregator import count_by_severity, merge
from .cache import DiagnosticCache
from .coalescer import JobCoalescer, Phase
from .coordinator import AnalyzerChannel, OverlayCoordinator
from .supervisor import CrashSupervisor

__all__ = [
    "AnalyzerChannel",
    "CrashSupervisor",
    "DiagnosticCache",
    "JobCoalescer",
    "OverlayCoordinator",
    "Phase",
    "count_by_severity",
    "merge",
]
