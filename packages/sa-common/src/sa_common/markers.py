"""
Marker sink interface for StreamAtlas.

The map surface is an external collaborator reached only through the
write-only ``MarkerSink`` and ``DisplaySink`` protocols.  This module also
holds the pure styling rules the sink consumes: bandwidth colour coding
and the server-to-user connection line.
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from sa_common.models.session import GeoPoint, ReconciliationDelta, Session
from sa_common.utils import format_bandwidth, format_media_title

# (exclusive lower bound in kbps, colour), checked top-down.
BANDWIDTH_COLORS: tuple[tuple[int, str], ...] = (
    (20_000, "#ff4444"),  # red
    (10_000, "#ff8844"),  # orange
    (5_000, "#ffaa44"),  # yellow-orange
    (2_000, "#ffcc44"),  # yellow
)
LOW_BANDWIDTH_COLOR = "#44ff44"  # green


class MarkerSink(Protocol):
    """Write-only map surface."""

    def upsert(self, key: str, position: GeoPoint, payload: dict[str, Any]) -> None: ...

    def remove(self, key: str) -> None: ...


class DisplaySink(Protocol):
    """Write-only text display for the playback clock."""

    def show_time(self, text: str) -> None: ...


class ConnectionLine(BaseModel):
    """Styled server-to-user link.

    Attributes:
        origin: Server end.
        destination: User end.
        color: Hex colour derived from bandwidth.
        dashed: Drawn dashed when the user location is synthesized.
    """

    model_config = ConfigDict(frozen=True)

    origin: GeoPoint
    destination: GeoPoint
    color: str
    dashed: bool = False


def bandwidth_color(bandwidth_kbps: int) -> str:
    """Colour for a stream bandwidth in kbps."""
    for threshold, color in BANDWIDTH_COLORS:
        if bandwidth_kbps > threshold:
            return color
    return LOW_BANDWIDTH_COLOR


def connection_line(
    origin: GeoPoint,
    destination: GeoPoint,
    bandwidth_kbps: int,
    *,
    synthesized: bool = False,
) -> ConnectionLine:
    return ConnectionLine(
        origin=origin,
        destination=destination,
        color=bandwidth_color(bandwidth_kbps),
        dashed=synthesized,
    )


def marker_payload(session: Session, origin: GeoPoint) -> dict[str, Any]:
    """Display payload sent with every upsert."""
    line = connection_line(
        origin,
        session.marker_position,
        session.stream.bandwidth_kbps,
        synthesized=session.is_synthesized_location,
    )
    return {
        "username": session.username,
        "title": format_media_title(session.media),
        "place": f"{session.location.city}, {session.location.country}",
        "bandwidth": format_bandwidth(session.stream.bandwidth_kbps),
        "quality": session.stream.quality,
        "player": session.stream.player,
        "color": line.color,
        "synthesized": session.is_synthesized_location,
        "line": line.model_dump(mode="json"),
    }


def apply_delta(sink: MarkerSink, delta: ReconciliationDelta, origin: GeoPoint) -> None:
    """Push *delta* into *sink*: removals first, then upserts."""
    for key in delta.removed:
        sink.remove(key)
    for session in [*delta.added, *delta.updated]:
        sink.upsert(session.key, session.marker_position, marker_payload(session, origin))
