"""
Raw session record normalization for StreamAtlas.

Converts a raw Tautulli activity or history record into a canonical
``Session``.  The normalizer never raises: missing fields degrade to
placeholders and a missing geolocation is replaced by a synthesized one
placed on a ring around the fallback origin, so that sessions from local
or unresolvable clients still render as distinct markers.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from sa_common.geoip import is_local_address, location_from_geoip
from sa_common.models.session import GeoPoint, Location, MediaInfo, Session, StreamInfo
from sa_common.placement import ring_offset
from sa_common.utils import as_int, as_text

logger = structlog.get_logger()

SYNTHESIZED_RADIUS_DEG: float = 0.01
UNKNOWN_USER = "Unknown User"
UNKNOWN_TITLE = "Unknown Title"
# 9998-12-31T23:59:59Z; converting to any local zone stays within datetime range
MAX_EPOCH_S = 253_370_764_799

RawSession = Mapping[str, Any]


def _clamp_lat(lat: float) -> float:
    return max(-90.0, min(90.0, lat))


def _wrap_lon(lon: float) -> float:
    return ((lon + 180.0) % 360.0) - 180.0


def synthesize_location(
    ip_address: str,
    origin: GeoPoint,
    index_in_batch: int,
    batch_size: int,
) -> Location:
    """Placeholder location on a ring around *origin*.

    Uses the same angular distribution as the collision ring, with a larger
    radius and no longitude stretch.
    """
    d_lat, d_lon = ring_offset(index_in_batch, batch_size, SYNTHESIZED_RADIUS_DEG)
    local = is_local_address(ip_address)
    return Location(
        lat=_clamp_lat(origin.lat + d_lat),
        lon=_wrap_lon(origin.lon + d_lon),
        city="Local Network" if local else "Unknown",
        region="",
        country="LAN" if local else "Unknown",
        isp="Local Network" if local else "Unknown ISP",
    )


class SessionNormalizer:
    """Build ``Session`` entities from raw live or historical records.

    Args:
        historical: Normalize history records (``hist-`` keys, start/stop
            times) instead of live activity records.
    """

    def __init__(self, *, historical: bool = False) -> None:
        self.historical = historical

    def normalize(
        self,
        raw: RawSession,
        fallback_origin: GeoPoint,
        index_in_batch: int,
        batch_size: int,
        *,
        geo: Location | None = None,
        now_ms: int | None = None,
    ) -> Session:
        """Normalize one raw record.

        Args:
            raw: Raw record as returned by the session source.
            fallback_origin: Centre of the ring used for synthesized locations.
            index_in_batch: Position of the record in its batch.
            batch_size: Number of records in the batch.
            geo: Location resolved for the record's address, if any.
            now_ms: Clock used for keys of records without an identifier.

        Returns:
            A valid ``Session``; never raises.
        """
        ip_address = as_text(raw.get("ip_address")) or ""
        location = geo
        if location is None and "latitude" in raw:
            location = location_from_geoip(dict(raw))
        synthesized = location is None
        if location is None:
            location = synthesize_location(ip_address, fallback_origin, index_in_batch, batch_size)

        key = self._key(raw, index_in_batch, now_ms)
        start_ms, stop_ms = self._interval(raw)
        try:
            return Session(
                key=key,
                username=self._username(raw),
                user_id=as_text(raw.get("user_id")),
                ip_address=ip_address,
                location=location,
                media=self._media(raw),
                stream=StreamInfo(
                    bandwidth_kbps=max(0, as_int(raw.get("bandwidth"))),
                    quality=as_text(raw.get("quality_profile"), raw.get("transcode_decision"))
                    or "Unknown",
                    player=as_text(raw.get("player")) or "Unknown Player",
                    platform=as_text(raw.get("platform")) or "Unknown Platform",
                    state=as_text(raw.get("state")),
                ),
                start_ms=start_ms,
                stop_ms=stop_ms,
                paused_ms=max(0, as_int(raw.get("paused_duration", raw.get("paused_counter"))) * 1000),
                is_synthesized_location=synthesized,
            )
        except ValidationError as exc:
            logger.warning("session_record_degraded", key=key, error=str(exc))
            return Session(
                key=key,
                username=self._username(raw),
                ip_address=ip_address,
                location=location,
                media=MediaInfo(title=UNKNOWN_TITLE),
                is_synthesized_location=synthesized,
            )

    # ── field mapping ──

    def _key(self, raw: RawSession, index: int, now_ms: int | None) -> str:
        if self.historical:
            ident = as_text(raw.get("reference_id"), raw.get("session_key"), raw.get("id"))
            if ident is None:
                ident = self._content_hash(raw)
            return f"hist-{ident}-{index}"

        session_key = as_text(raw.get("session_key"))
        if session_key is not None:
            started = as_text(raw.get("started"))
            return f"{session_key}-{started}" if started else session_key
        stamp = now_ms if now_ms is not None else int(time.time() * 1000)
        return f"session-{stamp}-{index}"

    @staticmethod
    def _content_hash(raw: RawSession) -> str:
        parts = [
            as_text(raw.get(field)) or ""
            for field in ("started", "user", "username", "user_id", "full_title", "title", "ip_address")
        ]
        return hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()[:12]

    def _username(self, raw: RawSession) -> str:
        if self.historical:
            name = as_text(raw.get("user"), raw.get("username"), raw.get("friendly_name"))
        else:
            name = as_text(raw.get("friendly_name"), raw.get("username"), raw.get("user"))
        return name or UNKNOWN_USER

    def _media(self, raw: RawSession) -> MediaInfo:
        if self.historical:
            title = as_text(raw.get("full_title"), raw.get("title"))
        else:
            title = as_text(raw.get("title"), raw.get("full_title"))
        year = as_int(raw.get("year"), default=-1)
        return MediaInfo(
            title=title or UNKNOWN_TITLE,
            media_type=as_text(raw.get("media_type")),
            year=year if year >= 0 else None,
            parent_title=as_text(raw.get("parent_title")),
            grandparent_title=as_text(raw.get("grandparent_title")),
        )

    def _interval(self, raw: RawSession) -> tuple[int | None, int | None]:
        started = as_int(raw.get("started"), default=-1)
        if started < 0:
            return None, None
        if started > MAX_EPOCH_S:
            logger.warning("session_start_out_of_range", started=started)
            return None, None
        start_ms = started * 1000
        if not self.historical:
            return start_ms, None

        stopped = as_int(raw.get("stopped"), default=-1)
        if stopped <= 0:
            stopped = started + max(0, as_int(raw.get("duration")))
        if stopped > MAX_EPOCH_S:
            stopped = started
        stop_ms = stopped * 1000
        return start_ms, max(start_ms, stop_ms)
