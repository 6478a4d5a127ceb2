"""
Viewer service entry point for StreamAtlas.

Starts a FastAPI application that:

* Exposes ``/health`` and ``/metrics`` endpoints.
* On startup, wires the Tautulli client, the geolocation resolver, the
  live poller and the history playback controller to a shared WebSocket
  marker sink, and starts the live view when an API key is configured.
* Serves the mode, visibility, history and playback controls under
  ``/api/v1`` and the marker stream at ``/ws/markers``.
* All logging is structured via ``structlog``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from sa_common.config import get_settings
from sa_common.geoip import GeoResolver
from sa_common.logging import configure_logging
from sa_common.scheduler import AsyncioScheduler
from sa_common.source.tautulli_client import TautulliClient

from history.loader import HistoryLoader
from history.playback import PlaybackController
from history.stats import HistoryStatsAggregator
from live.poller import LivePoller
from live.reconciler import StreamReconciler

from viewer.middleware.logging import LoggingMiddleware
from viewer.mode import ViewController
from viewer.routers import health, history, live, view, ws
from viewer.sink import WebSocketMarkerSink

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: build the drivers, start live, shut down."""
    settings = get_settings()
    configure_logging("viewer", settings.log_level, json_output=settings.log_json)

    # ── startup ──
    origin = settings.server_origin
    client = TautulliClient(
        settings.tautulli_url,
        settings.tautulli_api_key,
        timeout=settings.request_timeout_s,
    )
    resolver = GeoResolver(client)
    sink = WebSocketMarkerSink()
    scheduler = AsyncioScheduler()

    poller = LivePoller(
        client,
        resolver,
        StreamReconciler(origin),
        sink,
        scheduler,
        interval_s=settings.refresh_interval_s,
    )
    playback = PlaybackController(
        sink,
        sink,
        scheduler,
        origin=origin,
        tz=settings.display_timezone,
    )
    controller = ViewController(
        poller,
        playback,
        HistoryLoader(client, resolver, origin, page_length=settings.history_page_length),
        HistoryStatsAggregator(settings.display_timezone),
        history_days=settings.history_days,
    )
    app.state.sink = sink
    app.state.controller = controller

    logger.info(
        "viewer_startup",
        tautulli_url=settings.tautulli_url,
        refresh_interval_s=settings.refresh_interval_s,
    )
    if settings.is_configured:
        await controller.switch_to_live()
    else:
        logger.warning("tautulli_not_configured", hint="set SA_TAUTULLI_API_KEY")

    yield

    # ── shutdown ──
    logger.info("viewer_shutdown")
    controller.shutdown()
    await client.close()


def create_app() -> FastAPI:
    """Build and return the fully-configured FastAPI application."""
    app = FastAPI(
        title="StreamAtlas Viewer",
        version="0.1.0",
        lifespan=lifespan,
    )

    # ── Routers (under /api/v1 prefix) ──
    api_prefix = "/api/v1"
    app.include_router(live.router, prefix=api_prefix)
    app.include_router(view.router, prefix=api_prefix)
    app.include_router(history.router, prefix=api_prefix)

    # Health + WS are mounted at root (no /api/v1 prefix).
    app.include_router(health.router)
    app.include_router(ws.router)

    app.mount("/metrics", make_asgi_app())

    # ── Middleware (applied outermost-first) ──
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()


def main() -> None:
    """Run the viewer service with Uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "viewer.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
