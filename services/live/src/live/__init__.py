"""
StreamAtlas Live Service.

Polls current playback activity from the session source, reconciles each
batch into add/update/remove marker deltas and pushes them to the map
sink.
"""

from __future__ import annotations

from live.poller import LivePoller, LiveSummary
from live.reconciler import StreamReconciler

__all__ = [
    "LivePoller",
    "LiveSummary",
    "StreamReconciler",
]
