"""Shared fixtures for sa-common tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import pytest

from sa_common.models.session import GeoPoint, Location, MediaInfo, Session

# Keep a developer's real configuration out of the tests.
os.environ.setdefault("SA_TAUTULLI_API_KEY", "")


@pytest.fixture()
def origin() -> GeoPoint:
    """The default server coordinate (Paris)."""
    return GeoPoint(lat=48.856614, lon=2.352222)


@pytest.fixture()
def make_session() -> Callable[..., Session]:
    """Factory for minimal ``Session`` instances."""

    def _make(key: str, lat: float = 10.0, lon: float = 20.0, **overrides: Any) -> Session:
        fields: dict[str, Any] = {
            "key": key,
            "location": Location(lat=lat, lon=lon, city="Lyon", country="France"),
            "media": MediaInfo(title="Big Buck Bunny"),
        }
        fields.update(overrides)
        return Session(**fields)

    return _make


@pytest.fixture()
def live_record() -> dict[str, Any]:
    """A complete raw ``get_activity`` session record."""
    return {
        "session_key": "42",
        "user": "alice",
        "friendly_name": "Alice",
        "user_id": 7,
        "ip_address": "93.184.216.34",
        "title": "Pilot",
        "full_title": "Show - Pilot",
        "media_type": "episode",
        "year": "2008",
        "grandparent_title": "Show",
        "parent_title": "Season 1",
        "player": "Chrome",
        "platform": "Windows",
        "quality_profile": "1080p",
        "bandwidth": "12345",
        "state": "playing",
        "started": 1_700_000_000,
    }


@pytest.fixture()
def history_record() -> dict[str, Any]:
    """A complete raw ``get_history`` record."""
    return {
        "reference_id": 991,
        "id": 1001,
        "user": "bob",
        "friendly_name": "Bobby",
        "ip_address": "151.101.1.69",
        "title": "Heat",
        "full_title": "Heat (1995)",
        "media_type": "movie",
        "year": 1995,
        "player": "Plex Web",
        "platform": "Chrome",
        "transcode_decision": "direct play",
        "started": 1_700_000_000,
        "stopped": 1_700_007_200,
        "paused_counter": 600,
    }
