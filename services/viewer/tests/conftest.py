"""Shared fixtures for viewer service tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sa_common.geoip import GeoResolver
from sa_common.models.session import GeoPoint
from sa_common.scheduler import ManualScheduler

from history.loader import HistoryLoader
from history.playback import PlaybackController
from history.stats import HistoryStatsAggregator
from live.poller import LivePoller
from live.reconciler import StreamReconciler

from viewer.mode import ViewController
from viewer.routers import health, history, live, view, ws
from viewer.sink import WebSocketMarkerSink

ORIGIN = GeoPoint(lat=48.856614, lon=2.352222)
NOW_S = 1_700_000_000


def activity_record(session_key: str, **overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "session_key": session_key,
        "friendly_name": f"user-{session_key}",
        "ip_address": "192.168.1.20",
        "title": f"Live {session_key}",
        "bandwidth": "8000",
        "started": NOW_S,
    }
    record.update(overrides)
    return record


def history_record(ref: int, started: int) -> dict[str, Any]:
    return {
        "reference_id": ref,
        "user": f"user{ref}",
        "ip_address": "10.0.0.7",
        "full_title": f"Film {ref}",
        "started": started,
        "stopped": started + 7200,
    }


# ─── Core fixtures ────────────────────────────────────────────


@pytest.fixture()
def source() -> AsyncMock:
    """Mocked Tautulli client with one live session and two history records."""
    src = AsyncMock()
    src.get_activity = AsyncMock(return_value=[activity_record("1"), activity_record("2")])
    src.get_history = AsyncMock(
        return_value=([history_record(1, NOW_S - 3600), history_record(2, NOW_S - 7200)], 2)
    )
    src.get_geoip_lookup = AsyncMock(return_value=None)
    return src


@pytest.fixture()
def sink() -> WebSocketMarkerSink:
    return WebSocketMarkerSink()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def controller(
    source: AsyncMock,
    sink: WebSocketMarkerSink,
    scheduler: ManualScheduler,
) -> ViewController:
    resolver = GeoResolver(source)
    poller = LivePoller(source, resolver, StreamReconciler(ORIGIN), sink, scheduler, interval_s=30)
    playback = PlaybackController(sink, sink, scheduler, origin=ORIGIN)
    loader = HistoryLoader(source, resolver, ORIGIN, page_length=100)
    return ViewController(poller, playback, loader, HistoryStatsAggregator(), history_days=100_000)


def _build_app(controller: ViewController, sink: WebSocketMarkerSink) -> FastAPI:
    """Build a minimal FastAPI app with pre-built state for testing."""
    app = FastAPI()
    app.state.controller = controller
    app.state.sink = sink

    prefix = "/api/v1"
    app.include_router(live.router, prefix=prefix)
    app.include_router(view.router, prefix=prefix)
    app.include_router(history.router, prefix=prefix)
    app.include_router(health.router)
    app.include_router(ws.router)
    return app


@pytest.fixture()
def app(controller: ViewController, sink: WebSocketMarkerSink) -> FastAPI:
    return _build_app(controller, sink)


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
