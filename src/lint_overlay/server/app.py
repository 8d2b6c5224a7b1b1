"""Starlette ASGI application: push channel, overlay client and JSON API."""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional, Sequence

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import FileResponse, HTMLResponse, JSONResponse, Response
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from ..core.aggregator import count_by_severity
from ..models import RunAll, encode_diagnostics
from ..render import render_html
from .gateway import NotificationGateway

if TYPE_CHECKING:
    from ..core.coordinator import OverlayCoordinator
    from .watcher import FileWatcher

logger = logging.getLogger(__name__)

ASSETS = Path(__file__).parent
OVERLAY_SCRIPT = ASSETS / "static" / "overlay.js"

PING = {"type": "ping"}


@functools.lru_cache(maxsize=1)
def _index_page() -> str:
    return (ASSETS / "templates" / "index.html").read_text(encoding="utf-8")


async def _push_updates(
    websocket: WebSocket, queue: asyncio.Queue[Any], ping_interval: float
) -> None:
    """Forward queued updates to one observer, pinging when idle."""
    while True:
        try:
            message = await asyncio.wait_for(queue.get(), timeout=ping_interval)
        except asyncio.TimeoutError:
            message = PING
        await websocket.send_json(message)


def create_app(
    coordinator: OverlayCoordinator,
    watcher: Optional[FileWatcher] = None,
    queue_size: int = 32,
    ping_interval: float = 30.0,
    shutdown_timeout: float = 5.0,
    allowed_origins: Sequence[str] = ("*",),
) -> Starlette:
    """Build the Starlette application wired to *coordinator*.

    The lifespan starts the analyzer workers and the file watcher on the
    server's event loop and tears everything down on shutdown.
    """
    gateway: NotificationGateway = coordinator.gateway

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        await coordinator.start()
        if watcher is not None:
            watcher.start()
        try:
            yield
        finally:
            if watcher is not None:
                await watcher.stop()
            logger.debug("Dropped %d observer connection(s)", gateway.close())
            coordinator.close(shutdown_timeout)

    async def index(request: Request) -> HTMLResponse:
        return HTMLResponse(_index_page())

    async def overlay_script(request: Request) -> FileResponse:
        return FileResponse(OVERLAY_SCRIPT, media_type="text/javascript")

    async def diagnostics(request: Request) -> JSONResponse:
        current = gateway.snapshot
        return JSONResponse(
            {
                "errors": encode_diagnostics(current),
                "counts": count_by_severity(current),
                "analyzers": coordinator.analyzers,
            }
        )

    async def overlay_fragment(request: Request) -> Response:
        # 204 tells the client to hide the overlay
        fragment = render_html(gateway.snapshot)
        return Response(status_code=204) if fragment is None else HTMLResponse(fragment)

    async def rescan(request: Request) -> JSONResponse:
        coordinator.submit(RunAll())
        return JSONResponse({"status": "refresh_started"})

    async def observe(websocket: WebSocket) -> None:
        await websocket.accept()
        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=queue_size)
        gateway.connect(queue)
        try:
            await _push_updates(websocket, queue, ping_interval)
        except (WebSocketDisconnect, asyncio.CancelledError):
            pass
        except Exception as exc:
            logger.debug("Observer connection failed: %s", exc)
        finally:
            gateway.disconnect(queue)
            with contextlib.suppress(Exception):
                await websocket.close()

    return Starlette(
        routes=[
            Route("/", index),
            Route("/overlay.js", overlay_script),
            Route("/api/diagnostics", diagnostics),
            Route("/api/overlay", overlay_fragment),
            Route("/api/refresh", rescan, methods=["POST"]),
            WebSocketRoute("/ws", observe),
        ],
        # Dev pages on other origins load overlay.js as a module script
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=list(allowed_origins),
                allow_methods=["GET", "POST"],
            )
        ],
        lifespan=lifespan,
    )
