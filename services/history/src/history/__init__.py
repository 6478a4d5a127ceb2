"""
StreamAtlas History Service.

Loads a window of play history, builds the densified playback timeline,
drives the stopped/playing/paused playback state machine and computes
the summary statistics.
"""

from __future__ import annotations

from history.loader import HistoryLoader
from history.playback import PlaybackController
from history.stats import HistoryStatsAggregator
from history.timeline import HOUR_MS, TimelineBuilder

__all__ = [
    "HOUR_MS",
    "HistoryLoader",
    "HistoryStatsAggregator",
    "PlaybackController",
    "TimelineBuilder",
]
