"""Analyzer adapters and the worker processes they run in."""

from .batch import BatchAnalyzer, batch_worker_main
from .process import WorkerProcess
from .watch import WatchAnalyzer, watch_worker_main

__all__ = [
    "BatchAnalyzer",
    "WatchAnalyzer",
    "WorkerProcess",
    "batch_worker_main",
    "watch_worker_main",
]
