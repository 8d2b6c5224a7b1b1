"""``lint-overlay serve``: live overlay server with file watching."""

from pathlib import Path
from typing import Optional

import typer

from ..server.lifecycle import launch_server
from . import app
from ._common import console, init_logging, resolve_config


@app.command()
def serve(
    path: Path = typer.Argument(Path("."), file_okay=False, help="Project directory"),
    port: Optional[int] = typer.Option(None, help="Port to listen on"),
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    root_dir: Optional[str] = typer.Option(None, "--root-dir", help="Directory to lint"),
    ts: Optional[bool] = typer.Option(None, "--ts/--no-ts", help="Run the TypeScript checker"),
    tsconfig: Optional[str] = typer.Option(None, "--tsconfig", help="tsconfig to use"),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file"),
    no_browser: bool = typer.Option(False, "--no-browser", help="Don't open browser"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file"),
) -> None:
    """Serve a live overlay that follows file changes."""
    init_logging(verbose, log_file)
    settings = resolve_config(
        path, config=config, root_dir=root_dir, ts=ts, tsconfig=tsconfig, port=port, host=host
    )
    launch_server(settings, console, no_browser=no_browser, verbose=verbose)
