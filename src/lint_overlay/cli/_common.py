"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..config import OverlayConfig, load_config
from ..exceptions import ConfigurationError
from ..logging_config import setup_logging

console = Console()


def resolve_config(
    path: Path,
    config: Optional[Path] = None,
    root_dir: Optional[str] = None,
    ts: Optional[bool] = None,
    tsconfig: Optional[str] = None,
    **overrides,
) -> OverlayConfig:
    """Build configuration from CLI options, exiting with a message on error."""
    try:
        return load_config(
            config_file=config,
            project_root=str(path),
            root_dir=root_dir,
            ts=ts,
            tsconfig_path=tsconfig,
            **overrides,
        )
    except (ConfigurationError, ValueError) as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(2)


def init_logging(verbose: bool, log_file: Optional[str] = None) -> None:
    setup_logging(verbose=verbose, log_file=log_file)
