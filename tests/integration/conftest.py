"""
Integration test fixtures for StreamAtlas.

Runs a real ``TautulliClient`` against an in-process fake of the
Tautulli ``/api/v2`` endpoint served through ``httpx.MockTransport``,
so the full fetch -> resolve -> reconcile -> render path is exercised
without a network.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from sa_common.geoip import GeoResolver
from sa_common.models.session import GeoPoint
from sa_common.scheduler import ManualScheduler
from sa_common.source.tautulli_client import TautulliClient

from history.loader import HistoryLoader
from history.playback import PlaybackController
from history.stats import HistoryStatsAggregator
from live.poller import LivePoller
from live.reconciler import StreamReconciler

from viewer.mode import ViewController
from viewer.sink import WebSocketMarkerSink

ORIGIN = GeoPoint(lat=48.856614, lon=2.352222)
API_KEY = "integration-key"

GEOIP = {
    "93.184.216.34": {
        "city": "Norwell",
        "region": "Massachusetts",
        "country": "United States",
        "latitude": 42.1596,
        "longitude": -70.8217,
    },
    "151.101.1.69": {
        "city": "Montreal",
        "region": "Quebec",
        "country": "Canada",
        "latitude": 45.5088,
        "longitude": -73.5878,
    },
}


class FakeTautulli:
    """Minimal in-memory Tautulli answering the commands the viewer uses."""

    def __init__(self) -> None:
        now_s = int(time.time())
        self.activity: list[dict[str, Any]] = [
            {
                "session_key": "11",
                "friendly_name": "alice",
                "ip_address": "93.184.216.34",
                "full_title": "Blade Runner",
                "bandwidth": "12000",
                "quality_profile": "Original",
                "transcode_decision": "direct play",
                "started": now_s - 600,
            },
            {
                "session_key": "12",
                "friendly_name": "bob",
                "ip_address": "192.168.1.20",
                "full_title": "Alien",
                "bandwidth": "3000",
                "transcode_decision": "transcode",
                "started": now_s - 120,
            },
        ]
        self.history: list[dict[str, Any]] = [
            {
                "reference_id": 501,
                "user": "alice",
                "ip_address": "93.184.216.34",
                "full_title": "Heat",
                "started": now_s - 2 * 3600,
                "stopped": now_s - 3600,
            },
            {
                "reference_id": 502,
                "user": "carol",
                "ip_address": "151.101.1.69",
                "full_title": "Arrival",
                "started": now_s - 3 * 3600,
                "stopped": now_s - 3600,
            },
            {
                "reference_id": 400,
                "user": "dave",
                "ip_address": "151.101.1.69",
                "full_title": "Old",
                "started": now_s - 40 * 86_400,
                "stopped": now_s - 40 * 86_400 + 3600,
            },
        ]
        self.calls: list[str] = []
        self.failing = False

    def handle(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        cmd = params.get("cmd", "")
        self.calls.append(cmd)
        if self.failing:
            return httpx.Response(502)
        if params.get("apikey") != API_KEY:
            return self._reply("error", None, message="Invalid apikey")
        if cmd == "get_activity":
            return self._reply("success", {"stream_count": len(self.activity), "sessions": self.activity})
        if cmd == "get_history":
            return self._reply(
                "success",
                {"recordsTotal": len(self.history), "data": self.history},
            )
        if cmd == "get_geoip_lookup":
            data = GEOIP.get(params.get("ip_address", ""))
            if data is None:
                return self._reply("error", None, message="No GeoIP data")
            return self._reply("success", data)
        return self._reply("error", None, message=f"Unknown command {cmd}")

    @staticmethod
    def _reply(result: str, data: Any, message: str | None = None) -> httpx.Response:
        return httpx.Response(
            200,
            json={"response": {"result": result, "message": message, "data": data}},
        )


@pytest.fixture()
def fake_tautulli() -> FakeTautulli:
    return FakeTautulli()


@pytest_asyncio.fixture()
async def tautulli(fake_tautulli: FakeTautulli) -> AsyncIterator[TautulliClient]:
    """``TautulliClient`` wired to the fake server."""
    client = TautulliClient("http://tautulli.test", API_KEY, max_attempts=1)
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(fake_tautulli.handle))
    yield client
    await client.close()


@pytest.fixture()
def sink() -> WebSocketMarkerSink:
    return WebSocketMarkerSink()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def controller(
    tautulli: TautulliClient,
    sink: WebSocketMarkerSink,
    scheduler: ManualScheduler,
) -> ViewController:
    resolver = GeoResolver(tautulli)
    poller = LivePoller(tautulli, resolver, StreamReconciler(ORIGIN), sink, scheduler, interval_s=30)
    playback = PlaybackController(sink, sink, scheduler, origin=ORIGIN)
    loader = HistoryLoader(tautulli, resolver, ORIGIN)
    return ViewController(poller, playback, loader, HistoryStatsAggregator(), history_days=10)
