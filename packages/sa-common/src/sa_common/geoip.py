"""
Geolocation resolution for StreamAtlas.

Resolves client addresses to ``Location`` records through the session
source's GeoIP lookup.  Loopback, private and unparseable addresses are
unresolvable without a lookup; the caller substitutes a synthesized
location for them.  Successful lookups are cached in memory for the life
of the process.
"""

from __future__ import annotations

import ipaddress
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from sa_common.metrics import GEOIP_LOOKUPS
from sa_common.models.session import Location

logger = structlog.get_logger()


class GeoLookup(Protocol):
    """Anything that can look an address up (e.g. ``TautulliClient``)."""

    async def get_geoip_lookup(self, ip_address: str) -> dict[str, Any] | None: ...


def is_local_address(ip_address: str | None) -> bool:
    """Return ``True`` for loopback, private or link-local addresses."""
    if not ip_address:
        return False
    if ip_address == "localhost":
        return True
    try:
        addr = ipaddress.ip_address(ip_address)
    except ValueError:
        return False
    return addr.is_private or addr.is_loopback or addr.is_link_local


def location_from_geoip(data: dict[str, Any] | None) -> Location | None:
    """Build a ``Location`` from a GeoIP payload, or ``None`` if unusable."""
    if not data or data.get("latitude") in (None, "") or data.get("longitude") in (None, ""):
        return None
    try:
        return Location(
            lat=float(data["latitude"]),
            lon=float(data["longitude"]),
            city=data.get("city") or "Unknown",
            region=data.get("region") or "",
            country=data.get("country") or "Unknown",
            isp=data.get("isp") or "Unknown ISP",
        )
    except (TypeError, ValueError, ValidationError):
        return None


class GeoResolver:
    """Cached address -> ``Location`` resolver.

    Args:
        lookup: Backend performing the actual GeoIP query.
    """

    def __init__(self, lookup: GeoLookup) -> None:
        self._lookup = lookup
        self._cache: dict[str, Location] = {}

    async def resolve(self, ip_address: str | None) -> Location | None:
        """Resolve *ip_address*; ``None`` means a location must be synthesized.

        Lookup failures are logged and treated as unresolvable.
        """
        if not ip_address:
            return None
        if is_local_address(ip_address):
            GEOIP_LOOKUPS.labels(result="local").inc()
            return None
        try:
            ipaddress.ip_address(ip_address)
        except ValueError:
            GEOIP_LOOKUPS.labels(result="invalid").inc()
            return None

        cached = self._cache.get(ip_address)
        if cached is not None:
            GEOIP_LOOKUPS.labels(result="cached").inc()
            return cached

        try:
            data = await self._lookup.get_geoip_lookup(ip_address)
        except Exception as exc:  # noqa: BLE001
            logger.warning("geoip_lookup_failed", ip_address=ip_address, error=str(exc))
            GEOIP_LOOKUPS.labels(result="error").inc()
            return None

        location = location_from_geoip(data)
        if location is None:
            GEOIP_LOOKUPS.labels(result="unresolved").inc()
            return None

        self._cache[ip_address] = location
        GEOIP_LOOKUPS.labels(result="resolved").inc()
        return location

    async def resolve_many(self, ip_addresses: list[str]) -> dict[str, Location | None]:
        """Resolve each distinct address once."""
        resolved: dict[str, Location | None] = {}
        for ip in ip_addresses:
            if ip not in resolved:
                resolved[ip] = await self.resolve(ip)
        return resolved

    def clear_cache(self) -> None:
        self._cache.clear()
