"""Wiring of configured analyzers into a coordinator."""

from __future__ import annotations

import functools
from typing import Optional

from .config import OverlayConfig
from .core.coordinator import OverlayCoordinator
from .engines.eslint import EslintEngine
from .engines.tsc import TscWatchEngine
from .server.gateway import NotificationGateway
from .workers.batch import BatchAnalyzer
from .workers.watch import WatchAnalyzer


def eslint_factory(config: OverlayConfig) -> functools.partial[EslintEngine]:
    return functools.partial(
        EslintEngine,
        project_root=str(config.resolved_root),
        root_dir=config.root_dir,
        extensions=tuple(config.extensions),
        command=config.eslint_command or None,
        timeout=config.lint_timeout or None,
    )


def tsc_factory(config: OverlayConfig) -> functools.partial[TscWatchEngine]:
    return functools.partial(
        TscWatchEngine,
        project_root=str(config.resolved_root),
        tsconfig_path=config.tsconfig_path,
        command=config.tsc_command or None,
    )


def build_coordinator(
    config: OverlayConfig, gateway: Optional[NotificationGateway] = None
) -> OverlayCoordinator:
    """Coordinator with every enabled analyzer registered.

    Registration order is merge order: TS first, then ESLint.
    """
    coordinator = OverlayCoordinator(str(config.resolved_root), gateway or NotificationGateway())
    if config.ts:
        coordinator.add_watch_analyzer(WatchAnalyzer(TscWatchEngine.source, tsc_factory(config)))
    if config.eslint:
        coordinator.add_batch_analyzer(BatchAnalyzer(EslintEngine.source, eslint_factory(config)))
    return coordinator
