"""
Marker placement and snapshot diffing for StreamAtlas.

Pure functions shared by the live reconciler and the history playback
renderer:

* ``offset`` / ``ring_offset`` spread records sharing one coordinate onto
  a ring of distinct positions.
* ``dedupe_keys`` makes keys unique within a batch without dropping any
  session.
* ``place_batch`` groups a batch by rounded coordinate and applies ring
  offsets to every group of two or more.
* ``diff_batches`` computes the add/update/remove delta between the
  previous snapshot and a new batch.

The ring is stretched 1.5x in longitude to compensate for the horizontal
squeeze of web-mercator tiles at mid latitudes.  This is a visual
approximation only, not a geodesic or equal-area spread.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from typing import NamedTuple

from sa_common.models.session import GeoPoint, ReconciliationDelta, Session

RING_RADIUS_DEG: float = 0.002
LON_STRETCH: float = 1.5
COORDINATE_PRECISION: int = 5


class Offset(NamedTuple):
    """Coordinate delta in decimal degrees."""

    d_lat: float
    d_lon: float


def ring_offset(index: int, total: int, radius: float, lon_scale: float = 1.0) -> Offset:
    """Position *index* of *total* on a ring of *radius* degrees.

    Unlike ``offset`` there is no single-member shortcut: index 0 of 1 sits
    at angle 0, east of the centre.
    """
    total = max(total, 1)
    angle = 2 * math.pi * index / total
    return Offset(radius * math.sin(angle), radius * math.cos(angle) * lon_scale)


def offset(index: int, total: int, radius: float = RING_RADIUS_DEG) -> Offset:
    """Collision offset for member *index* of a group of *total*.

    A group of one needs no offset.
    """
    if total <= 1:
        return Offset(0.0, 0.0)
    return ring_offset(index, total, radius, LON_STRETCH)


def location_key(point: GeoPoint, precision: int = COORDINATE_PRECISION) -> tuple[float, float]:
    """Rounded coordinate used to detect coincident locations."""
    return (round(point.lat, precision), round(point.lon, precision))


def dedupe_keys(sessions: Sequence[Session]) -> list[Session]:
    """Return *sessions* with in-batch key collisions disambiguated.

    A repeated key gets ``-{ordinal}`` appended, where ordinal is the
    session's position in the batch; the suffix grows until unique.
    """
    seen: set[str] = set()
    unique: list[Session] = []
    for ordinal, session in enumerate(sessions):
        key = session.key
        while key in seen:
            key = f"{key}-{ordinal}"
        seen.add(key)
        unique.append(session if key == session.key else session.model_copy(update={"key": key}))
    return unique


def place_batch(
    sessions: Sequence[Session],
    *,
    precision: int = COORDINATE_PRECISION,
    spread: Callable[[Session], float] | None = None,
) -> list[Session]:
    """Assign a rendered ``position`` to every session of the batch.

    Sessions are grouped by their rounded location; members of a group of
    *n* receive ring offsets ``0..n-1`` in batch order.  Nothing is cached,
    so group membership is recomputed on every call.

    Args:
        sessions: Normalized sessions, in batch order.
        precision: Decimal places used when grouping coordinates.
        spread: Optional per-session multiplier applied to the offset.

    Returns:
        New ``Session`` instances with ``position`` set, in input order.
    """
    groups: dict[tuple[float, float], list[int]] = {}
    for i, session in enumerate(sessions):
        groups.setdefault(location_key(session.location.point, precision), []).append(i)

    placed: list[Session] = list(sessions)
    for members in groups.values():
        total = len(members)
        for rank, i in enumerate(members):
            session = sessions[i]
            d_lat, d_lon = offset(rank, total)
            factor = spread(session) if spread is not None else 1.0
            position = GeoPoint(
                lat=session.location.lat + d_lat * factor,
                lon=session.location.lon + d_lon * factor,
            )
            placed[i] = session.model_copy(update={"position": position})
    return placed


def diff_batches(
    previous: Mapping[str, Session],
    current: Sequence[Session],
) -> tuple[dict[str, Session], ReconciliationDelta]:
    """Compute the transition from *previous* to *current*.

    Keys of *current* must already be unique (see ``dedupe_keys``).
    Sessions present in both snapshots are always reported as updated,
    since bandwidth or quality may have changed even when the position
    did not.

    Returns:
        ``(new_state, delta)``; *previous* is left untouched.
    """
    state = {session.key: session for session in current}
    added = [s for s in current if s.key not in previous]
    updated = [s for s in current if s.key in previous]
    removed = [key for key in previous if key not in state]
    return state, ReconciliationDelta(added=added, updated=updated, removed=removed)
