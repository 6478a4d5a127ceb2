"""Shared fixtures for history service tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from sa_common.models.session import GeoPoint, Location, MediaInfo, Session
from sa_common.scheduler import ManualScheduler

from history.playback import PlaybackController

HOUR = 3_600_000


@pytest.fixture()
def origin() -> GeoPoint:
    return GeoPoint(lat=48.856614, lon=2.352222)


@pytest.fixture()
def make_session() -> Callable[..., Session]:
    """Factory for historical ``Session`` instances."""

    def _make(
        key: str,
        start_ms: int | None = 0,
        stop_ms: int | None = HOUR,
        *,
        username: str = "alice",
        country: str = "France",
        lat: float = 45.764,
        lon: float = 4.8357,
        **overrides: Any,
    ) -> Session:
        fields: dict[str, Any] = {
            "key": key,
            "username": username,
            "location": Location(lat=lat, lon=lon, city="Lyon", country=country),
            "media": MediaInfo(title=f"Title {key}"),
            "start_ms": start_ms,
            "stop_ms": stop_ms,
        }
        fields.update(overrides)
        return Session(**fields)

    return _make


@pytest.fixture()
def marker_sink() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def display_sink() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def controller(
    marker_sink: MagicMock,
    display_sink: MagicMock,
    scheduler: ManualScheduler,
    origin: GeoPoint,
) -> PlaybackController:
    return PlaybackController(marker_sink, display_sink, scheduler, origin=origin)
