"""Server lifecycle management: startup, serving and graceful shutdown.

One overlay server per project. Startup claims the project (PID file) and a
port; shutdown stops uvicorn, terminates every analyzer worker and releases
the PID file, once, whichever path gets there first.
"""

from __future__ import annotations

import atexit
import contextlib
import logging
import os
import signal
import threading
import webbrowser
from typing import Any, Iterator, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..analyzers import build_coordinator
from ..config import OverlayConfig
from ..core.coordinator import OverlayCoordinator
from .gateway import NotificationGateway
from .process import (
    find_available_port,
    remove_pid_file,
    validate_existing_server,
    write_pid_file,
)

logger = logging.getLogger(__name__)


class ShutdownManager:
    """Releases everything the server holds.

    Triggered from the serve loop's ``finally``, from ``atexit`` or both;
    only the first call does any work.
    """

    def __init__(self, project_root: str, console: Console, timeout: float = 5.0) -> None:
        self.project_root = project_root
        self.console = console
        self.timeout = timeout

        self._lock = threading.Lock()
        self._done = False
        self._coordinator: Optional[OverlayCoordinator] = None
        self._uvicorn_server: Any = None

    def register_coordinator(self, coordinator: OverlayCoordinator) -> None:
        self._coordinator = coordinator

    def register_uvicorn(self, server: Any) -> None:
        self._uvicorn_server = server

    def shutdown(self) -> None:
        with self._lock:
            if self._done:
                return
            self._done = True

        report: list[str] = []

        if self._uvicorn_server is not None:
            self._uvicorn_server.should_exit = True
            report.append("Asked uvicorn to exit")

        # Worker processes must never outlive the host
        coordinator = self._coordinator
        if coordinator is not None:
            if not coordinator.closed:
                coordinator.close(self.timeout)
            report.append(f"Stopped analyzer workers ({', '.join(coordinator.analyzers) or 'none'})")

        if remove_pid_file(self.project_root):
            report.append("Cleaned up PID file")

        for line in report:
            self.console.print(f"  [green]OK[/green] {line}")
        self.console.print("  [green]OK[/green] Server stopped cleanly")


def _status_panel(config: OverlayConfig, url: str, coordinator: OverlayCoordinator) -> Panel:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold", no_wrap=True)
    grid.add_column()

    grid.add_row("Project", str(config.resolved_root))
    grid.add_row("Watching", f"{config.scope_dir} ({' '.join(config.extensions)})")
    grid.add_row("Analyzers", ", ".join(coordinator.analyzers) or "[dim]none[/dim]")
    grid.add_row("Overlay", f"[link={url}]{url}[/link]")
    grid.add_row("PID", str(os.getpid()))

    return Panel(grid, title="[bold]lint-overlay[/bold] [green]running[/green]", border_style="cyan")


def _claim_port(config: OverlayConfig, console: Console) -> Optional[int]:
    """Port to bind, or None when this project already has a live server."""
    existing = validate_existing_server(str(config.resolved_root), config.host)
    if existing is not None:
        url = f"http://{config.host}:{existing.port}"
        console.print(
            f"[bold]Overlay[/bold] already running at [link={url}]{url}[/link] "
            f"[dim](PID {existing.pid})[/dim]"
        )
        return None

    try:
        port = find_available_port(config.host, config.port)
    except RuntimeError as exc:
        console.print(f"[red]{exc}[/red]")
        return None
    if port != config.port:
        console.print(f"[yellow]Port {config.port} is taken, using {port}[/yellow]")
    return port


@contextlib.contextmanager
def _stop_on_signals(server: Any, console: Console) -> Iterator[None]:
    """Route SIGINT/SIGTERM to a graceful uvicorn exit for the block's duration."""
    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}

    def _handle(signum, frame):
        name = signal.Signals(signum).name
        logger.info("Received %s, shutting down", name)
        console.print(f"\n[yellow]{name} received, stopping...[/yellow]")
        server.should_exit = True

    for sig in previous:
        signal.signal(sig, _handle)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            try:
                signal.signal(sig, handler)
            except (OSError, ValueError):
                # Not on the main thread
                pass


def launch_server(
    config: OverlayConfig,
    console: Console,
    no_browser: bool = False,
    verbose: bool = False,
) -> None:
    """Run the overlay server until interrupted."""
    import uvicorn

    from .app import create_app
    from .watcher import FileWatcher

    project_root = str(config.resolved_root)

    port = _claim_port(config, console)
    if port is None:
        return

    gateway = NotificationGateway()
    coordinator = build_coordinator(config, gateway)
    if not coordinator.analyzers:
        console.print("[yellow]Every analyzer is disabled; the overlay will stay empty[/yellow]")

    shutdown_mgr = ShutdownManager(project_root, console, config.shutdown_timeout)
    shutdown_mgr.register_coordinator(coordinator)

    try:
        write_pid_file(project_root, port)
    except OSError as exc:
        console.print(f"[yellow]Could not write PID file: {exc}[/yellow]")
    atexit.register(shutdown_mgr.shutdown)

    app = create_app(
        coordinator,
        watcher=FileWatcher(config.scope_dir, config.extensions, coordinator),
        queue_size=config.queue_size,
        ping_interval=config.ping_interval,
        shutdown_timeout=config.shutdown_timeout,
        allowed_origins=config.allowed_origins,
    )
    server = uvicorn.Server(
        uvicorn.Config(app, host=config.host, port=port, log_level="info" if verbose else "warning")
    )
    shutdown_mgr.register_uvicorn(server)

    url = f"http://{config.host}:{port}"
    console.print(_status_panel(config, url, coordinator))
    console.print("[dim]Ctrl+C to stop[/dim]")
    if not no_browser:
        threading.Timer(1.0, webbrowser.open, args=(url,)).start()

    try:
        with _stop_on_signals(server, console):
            server.run()
    except Exception as exc:
        logger.exception("Server error")
        console.print(f"[red]Server error:[/red] {exc}")
    finally:
        shutdown_mgr.shutdown()
