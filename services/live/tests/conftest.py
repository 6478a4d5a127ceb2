"""Shared fixtures for live service tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from sa_common.geoip import GeoResolver
from sa_common.models.session import GeoPoint, Location
from sa_common.scheduler import ManualScheduler

from live.reconciler import StreamReconciler

PARIS = Location(lat=48.8566, lon=2.3522, city="Paris", country="France")


@pytest.fixture()
def origin() -> GeoPoint:
    return GeoPoint(lat=48.856614, lon=2.352222)


@pytest.fixture()
def make_record() -> Callable[..., dict[str, Any]]:
    """Factory for raw ``get_activity`` session records."""

    def _make(session_key: str, **overrides: Any) -> dict[str, Any]:
        record: dict[str, Any] = {
            "session_key": session_key,
            "friendly_name": f"user-{session_key}",
            "ip_address": "192.168.1.20",
            "title": f"Title {session_key}",
            "bandwidth": "4000",
            "started": 1_700_000_000,
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture()
def reconciler(origin: GeoPoint) -> StreamReconciler:
    return StreamReconciler(origin)


@pytest.fixture()
def geo_lookup() -> AsyncMock:
    """Lookup backend resolving every public address to Paris."""
    backend = AsyncMock()
    backend.get_geoip_lookup = AsyncMock(
        return_value={"latitude": PARIS.lat, "longitude": PARIS.lon, "city": "Paris", "country": "France"}
    )
    return backend


@pytest.fixture()
def resolver(geo_lookup: AsyncMock) -> GeoResolver:
    return GeoResolver(geo_lookup)


@pytest.fixture()
def sink() -> MagicMock:
    """Recording marker sink."""
    return MagicMock()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def source() -> AsyncMock:
    """Session source returning no activity by default."""
    src = AsyncMock()
    src.get_activity = AsyncMock(return_value=[])
    return src
