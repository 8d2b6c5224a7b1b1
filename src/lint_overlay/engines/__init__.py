"""Wrappers around the external analyzers."""

from .base import BatchEngine, WatchEngine, find_executable
from .eslint import EslintEngine, parse_eslint_report
from .tsc import TscOutputParser, TscWatchEngine, resolve_tsconfig

__all__ = [
    "BatchEngine",
    "EslintEngine",
    "TscOutputParser",
    "TscWatchEngine",
    "WatchEngine",
    "find_executable",
    "parse_eslint_report",
    "resolve_tsconfig",
]
