"""
Logging configuration for lint-overlay.

Rich-formatted terminal logging on stderr (stdout belongs to the command's
own report), optionally mirrored to a plain-text file.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "lint_overlay"

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("watchfiles", "watchfiles.main", "uvicorn.access")

FILE_FORMAT = "%(asctime)s %(processName)s %(name)s %(levelname)s: %(message)s"


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Route lint-overlay's log records to the terminal and optionally a file.

    Args:
        verbose: Show DEBUG records from lint_overlay (worker lifecycle,
            coalescing decisions) with source locations
        quiet: Only ERROR records
        log_file: Append every record, at the same level, to this file

    Returns:
        The ``lint_overlay`` package logger
    """
    level = logging.ERROR if quiet else logging.DEBUG if verbose else logging.INFO

    terminal = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        show_path=verbose,
        markup=False,
    )
    handlers: list[logging.Handler] = [terminal]

    if log_file:
        mirror = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        mirror.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(mirror)

    # Root stays at WARNING so dependencies only speak up when something is wrong
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=handlers, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    return package_logger


def setup_worker_logging(level: int) -> logging.Logger:
    """Terminal logging inside a spawned analyzer worker.

    *level* is the host's effective ``lint_overlay`` level. Records are
    prefixed with the worker's process name.
    """
    terminal = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    logging.basicConfig(
        level=logging.WARNING,
        format="[%(processName)s] %(message)s",
        handlers=[terminal],
        force=True,
    )
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    return package_logger
