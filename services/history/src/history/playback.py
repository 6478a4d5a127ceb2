"""
History playback controller for StreamAtlas.

A stopped / playing / paused state machine walking the timeline built by
``TimelineBuilder``.  Each step renders the sessions active at the
current instant (closed interval) into the marker sink, through the same
placement and diff core as the live view, and writes the formatted
instant to the display sink.

The playback clock is a scheduler tick: ``play()`` schedules
``advance()`` every frame interval and ``pause()`` / ``reset()`` / the end
of the timeline cancel it.  Reaching the end stops playback and rewinds
to index 0.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import structlog

from sa_common.config import PLAYBACK_FRAME_INTERVAL_S
from sa_common.markers import DisplaySink, MarkerSink, apply_delta
from sa_common.metrics import PLAYBACK_FRAMES
from sa_common.models.playback import PlaybackFrame, PlaybackState, PlaybackStatus
from sa_common.models.session import GeoPoint, Session
from sa_common.placement import dedupe_keys, diff_batches, location_key, place_batch
from sa_common.scheduler import CancellationHandle, Scheduler
from sa_common.utils import format_instant, get_zone

from history.timeline import TimelineBuilder

logger = structlog.get_logger()

# Collision-ring scale used by the all-sessions overview.
OVERVIEW_SPREAD = 0.5
OVERVIEW_SPREAD_SYNTHESIZED = 1.5


class PlaybackController:
    """Drives playback over a loaded batch of historical sessions.

    Args:
        marker_sink: Map surface receiving frame deltas.
        display_sink: Text display receiving the formatted instant.
        scheduler: Tick scheduler for the playback clock.
        origin: Server coordinate, the origin of connection lines.
        frame_interval_s: Seconds between two frames while playing.
        tz: Zone used to format instants.
        timeline_builder: Builder for the timeline (hourly by default).
    """

    def __init__(
        self,
        marker_sink: MarkerSink,
        display_sink: DisplaySink,
        scheduler: Scheduler,
        *,
        origin: GeoPoint,
        frame_interval_s: float = PLAYBACK_FRAME_INTERVAL_S,
        tz: str = "UTC",
        timeline_builder: TimelineBuilder | None = None,
    ) -> None:
        self._marker_sink = marker_sink
        self._display_sink = display_sink
        self._scheduler = scheduler
        self.origin = origin
        self.frame_interval_s = frame_interval_s
        self._zone = get_zone(tz)
        self._builder = timeline_builder or TimelineBuilder()

        self._sessions: list[Session] = []
        self._state = PlaybackState()
        self._handle: CancellationHandle | None = None
        self._rendered: dict[str, Session] = {}

    # ── state ──

    @property
    def state(self) -> PlaybackState:
        """A copy of the current playback state."""
        return self._state.model_copy(deep=True)

    @property
    def status(self) -> PlaybackStatus:
        return self._state.status

    @property
    def index(self) -> int:
        return self._state.index

    @property
    def timeline(self) -> list[int]:
        return list(self._state.timeline)

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    # ── data ──

    def load(self, sessions: Sequence[Session]) -> None:
        """Replace the loaded history and rebuild the timeline.

        Playback is reset to stopped at index 0 and every loaded session
        is rendered as an overview until the first seek or play.
        """
        self.reset()
        self._sessions = sorted(sessions, key=lambda s: (s.start_ms or 0, s.key))
        self._state = PlaybackState(timeline=self._builder.build(self._sessions))
        logger.info(
            "playback_loaded",
            sessions=len(self._sessions),
            timeline_points=len(self._state.timeline),
        )
        self.show_overview()

    def show_overview(self) -> None:
        """Render every loaded session at once."""
        self._render(
            self._sessions,
            spread=lambda s: OVERVIEW_SPREAD_SYNTHESIZED if s.is_synthesized_location else OVERVIEW_SPREAD,
        )
        users = {s.username for s in self._sessions}
        places = {location_key(s.location.point) for s in self._sessions}
        self._display_sink.show_time(
            f"{len(self._sessions)} sessions, {len(users)} users, {len(places)} locations"
        )

    # ── state machine ──

    def play(self) -> None:
        """Start or resume playback from the current index."""
        if not self._state.timeline:
            logger.info("playback_inactive_empty_timeline")
            return
        if self._state.status is PlaybackStatus.PLAYING:
            return
        self._set_status(PlaybackStatus.PLAYING)
        self._handle = self._scheduler.schedule(self.frame_interval_s, self.advance)

    def pause(self) -> None:
        """Halt playback, keeping the current index."""
        if self._state.status is not PlaybackStatus.PLAYING:
            return
        self._cancel_clock()
        self._set_status(PlaybackStatus.PAUSED)

    def toggle(self) -> None:
        if self._state.status is PlaybackStatus.PLAYING:
            self.pause()
        else:
            self.play()

    def stop(self) -> None:
        """Stop playback and rewind to the first instant."""
        self._cancel_clock()
        self._state.index = 0
        self._set_status(PlaybackStatus.STOPPED)

    def reset(self) -> None:
        """Stop, rewind and remove the rendered frame from the sink."""
        self.stop()
        self._render([])

    def seek(self, index: int) -> PlaybackFrame | None:
        """Jump to *index* (clamped) in any status and render that frame."""
        if not self._state.timeline:
            return None
        self._state.index = max(0, min(index, len(self._state.timeline) - 1))
        return self._emit()

    def advance(self) -> PlaybackFrame | None:
        """Step to the next instant; stop and rewind past the end.

        Invoked by the playback clock; ignored unless playing.
        """
        if self._state.status is not PlaybackStatus.PLAYING:
            return None
        next_index = self._state.index + 1
        if next_index >= len(self._state.timeline):
            logger.info("playback_end_of_timeline")
            self.stop()
            return None
        self._state.index = next_index
        return self._emit()

    # ── snapshots ──

    def active_sessions(self, instant_ms: int) -> list[Session]:
        """Sessions whose closed ``[start, stop]`` interval contains the instant."""
        return [s for s in self._sessions if s.is_active_at(instant_ms)]

    def frame_at(self, index: int) -> PlaybackFrame:
        instant = self._state.timeline[index]
        return PlaybackFrame(
            index=index,
            instant_ms=instant,
            label=format_instant(instant, self._zone),
            sessions=self.active_sessions(instant),
        )

    # ── internal ──

    def _emit(self) -> PlaybackFrame:
        frame = self.frame_at(self._state.index)
        self._render(frame.sessions)
        self._display_sink.show_time(frame.label)
        PLAYBACK_FRAMES.inc()
        logger.debug(
            "playback_frame",
            index=frame.index,
            instant_ms=frame.instant_ms,
            active=len(frame.sessions),
        )
        return frame

    def _render(
        self,
        sessions: Sequence[Session],
        spread: Callable[[Session], float] | None = None,
    ) -> None:
        placed = place_batch(dedupe_keys(sessions), spread=spread)
        self._rendered, delta = diff_batches(self._rendered, placed)
        apply_delta(self._marker_sink, delta, self.origin)

    def _cancel_clock(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _set_status(self, status: PlaybackStatus) -> None:
        if status is not self._state.status:
            logger.info("playback_status_changed", old=self._state.status.value, new=status.value)
        self._state.status = status
