"""
View mode controller for StreamAtlas.

The viewer shows either the live view or the history view, never both.
``ViewController`` owns the single active-driver slot: activating one
mode first deactivates the other and clears its markers.

* live -> history: poller stopped, live snapshot reset, live markers
  removed, history loaded and shown as an overview.
* history -> live: playback reset, frame markers removed, poller started.
* page hidden: poller stopped and playback paused.  Becoming visible
  again resumes polling when the live view is active; playback stays
  paused until the user resumes it.
"""

from __future__ import annotations

import enum

import structlog

from sa_common.models.playback import PlaybackFrame
from sa_common.models.stats import HistoryStats
from sa_common.source.tautulli_client import SourceUnavailable

from history.loader import HistoryLoader
from history.playback import PlaybackController
from history.stats import HistoryStatsAggregator
from live.poller import LivePoller

logger = structlog.get_logger()


class ViewMode(str, enum.Enum):
    LIVE = "live"
    HISTORY = "history"


class ModeConflict(Exception):
    """Raised when an operation is not available in the current mode."""


class ViewController:
    """Switches the viewer between its live and history drivers.

    Args:
        poller: Live poll driver.
        playback: History playback controller.
        loader: History loader.
        aggregator: History statistics aggregator.
        history_days: Default history window in days.
    """

    def __init__(
        self,
        poller: LivePoller,
        playback: PlaybackController,
        loader: HistoryLoader,
        aggregator: HistoryStatsAggregator,
        *,
        history_days: int = 10,
    ) -> None:
        self.poller = poller
        self.playback = playback
        self._loader = loader
        self._aggregator = aggregator
        self.history_days = history_days

        self.mode = ViewMode.LIVE
        self.visible = True
        self.stats = HistoryStats()
        self.loaded_days: int | None = None
        # bumped on every mode switch and history load; a load that
        # completes under a newer generation is discarded
        self._generation = 0

    # ── mode switching ──

    async def switch_to_live(self) -> None:
        """Deactivate history playback and start the live poller."""
        self._generation += 1
        if self.mode is ViewMode.HISTORY:
            self.playback.reset()
        self.mode = ViewMode.LIVE
        logger.info("view_mode_changed", mode=self.mode.value)
        if self.visible:
            await self.poller.start()

    async def switch_to_history(self, days: int | None = None) -> HistoryStats:
        """Stop the live view and load *days* of history.

        Raises:
            SourceUnavailable: When the history cannot be fetched; the
                view is then in history mode with nothing loaded.
        """
        self.poller.stop()
        self.poller.clear()
        self.mode = ViewMode.HISTORY
        logger.info("view_mode_changed", mode=self.mode.value)
        return await self.load_history(days)

    async def load_history(self, days: int | None = None) -> HistoryStats:
        """(Re)load the history window shown by the history view.

        A load overtaken by a mode switch or a newer load while it was
        fetching renders nothing and returns the current stats.
        """
        self._require(ViewMode.HISTORY)
        window = days or self.history_days
        self._generation += 1
        generation = self._generation
        self.playback.reset()
        try:
            sessions = await self._loader.load(window)
        except SourceUnavailable:
            if generation != self._generation:
                logger.info("history_load_discarded", days=window)
                raise
            self.playback.load([])
            self.stats = HistoryStats()
            self.loaded_days = None
            raise
        if generation != self._generation:
            logger.info("history_load_discarded", days=window)
            return self.stats
        self.playback.load(sessions)
        self.stats = self._aggregator.aggregate(sessions)
        self.loaded_days = window
        return self.stats

    # ── visibility ──

    async def set_visible(self, visible: bool) -> None:
        """Suspend the active driver while hidden; resume live when shown."""
        if visible == self.visible:
            return
        self.visible = visible
        logger.info("view_visibility_changed", visible=visible, mode=self.mode.value)
        if not visible:
            self.poller.stop()
            self.playback.pause()
        elif self.mode is ViewMode.LIVE:
            await self.poller.start()

    # ── playback controls ──

    def play(self) -> None:
        self._require(ViewMode.HISTORY)
        self.playback.play()

    def pause(self) -> None:
        self._require(ViewMode.HISTORY)
        self.playback.pause()

    def stop(self) -> None:
        self._require(ViewMode.HISTORY)
        self.playback.stop()

    def seek(self, index: int) -> PlaybackFrame | None:
        self._require(ViewMode.HISTORY)
        return self.playback.seek(index)

    def shutdown(self) -> None:
        """Cancel every driver schedule."""
        self.poller.stop()
        self.playback.stop()

    def _require(self, mode: ViewMode) -> None:
        if self.mode is not mode:
            raise ModeConflict(f"not available in {self.mode.value} mode")
