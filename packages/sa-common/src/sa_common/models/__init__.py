"""
Shared Pydantic data models for StreamAtlas.

This package contains the cross-service data models: sessions and their
sub-models, reconciliation deltas, playback state and history statistics.
"""

from sa_common.models.playback import PlaybackFrame, PlaybackState, PlaybackStatus
from sa_common.models.session import (
    GeoPoint,
    Location,
    MediaInfo,
    ReconciliationDelta,
    Session,
    StreamInfo,
)
from sa_common.models.stats import HistoryStats, UserStats

__all__ = [
    "GeoPoint",
    "HistoryStats",
    "Location",
    "MediaInfo",
    "PlaybackFrame",
    "PlaybackState",
    "PlaybackStatus",
    "ReconciliationDelta",
    "Session",
    "StreamInfo",
    "UserStats",
]
