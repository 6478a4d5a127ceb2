"""
Tests for the history playback controller.

Drives the stopped / playing / paused state machine with
``ManualScheduler`` ticks and recording sinks.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from sa_common.models.playback import PlaybackStatus
from sa_common.scheduler import ManualScheduler

from history.playback import PlaybackController

HOUR = 3_600_000


# ---------------------------------------------------------------------------
# Loading / overview
# ---------------------------------------------------------------------------


class TestLoad:

    def test_load_builds_timeline(self, controller: PlaybackController, make_session) -> None:
        controller.load([make_session("a", 0, 2 * HOUR)])
        assert controller.timeline == [0, HOUR, 2 * HOUR]
        assert controller.status is PlaybackStatus.STOPPED
        assert controller.index == 0

    def test_load_renders_overview(
        self,
        controller: PlaybackController,
        marker_sink: MagicMock,
        display_sink: MagicMock,
        make_session,
    ) -> None:
        controller.load([
            make_session("a", username="alice"),
            make_session("b", username="bob"),
            make_session("c", username="bob", lat=10.0, lon=10.0),
        ])
        assert marker_sink.upsert.call_count == 3
        display_sink.show_time.assert_called_with("3 sessions, 2 users, 2 locations")

    def test_overview_spreads_synthesized_wider(
        self, controller: PlaybackController, marker_sink: MagicMock, make_session,
    ) -> None:
        real = [make_session("a"), make_session("b")]
        controller.load(real)
        real_dlon = abs(marker_sink.upsert.call_args_list[0].args[1].lon - real[0].location.lon)

        marker_sink.reset_mock()
        synthesized = [
            make_session("c", is_synthesized_location=True),
            make_session("d", is_synthesized_location=True),
        ]
        controller.load(synthesized)
        upserts = [c for c in marker_sink.upsert.call_args_list if c.args[0] == "c"]
        synth_dlon = abs(upserts[0].args[1].lon - synthesized[0].location.lon)
        assert synth_dlon == pytest.approx(3 * real_dlon)

    def test_reload_removes_previous_markers(
        self, controller: PlaybackController, marker_sink: MagicMock, make_session,
    ) -> None:
        controller.load([make_session("a")])
        controller.load([make_session("b")])
        marker_sink.remove.assert_called_once_with("a")

    def test_empty_history(self, controller: PlaybackController, display_sink: MagicMock) -> None:
        controller.load([])
        assert controller.timeline == []
        display_sink.show_time.assert_called_with("0 sessions, 0 users, 0 locations")


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class TestStateMachine:

    def test_play_on_empty_timeline_is_inactive(
        self, controller: PlaybackController, scheduler: ManualScheduler,
    ) -> None:
        controller.load([])
        controller.play()
        assert controller.status is PlaybackStatus.STOPPED
        assert scheduler.active_jobs == 0

    def test_play_schedules_clock(
        self, controller: PlaybackController, scheduler: ManualScheduler, make_session,
    ) -> None:
        controller.load([make_session("a", 0, 2 * HOUR)])
        controller.play()
        assert controller.status is PlaybackStatus.PLAYING
        assert scheduler.active_jobs == 1

    def test_play_twice_keeps_one_clock(
        self, controller: PlaybackController, scheduler: ManualScheduler, make_session,
    ) -> None:
        controller.load([make_session("a", 0, 2 * HOUR)])
        controller.play()
        controller.play()
        assert scheduler.active_jobs == 1

    @pytest.mark.asyncio
    async def test_playing_to_the_end_stops_at_zero(
        self, controller: PlaybackController, scheduler: ManualScheduler, make_session,
    ) -> None:
        controller.load([make_session("a", 0, 4 * HOUR)])
        n = len(controller.timeline)
        controller.play()
        await scheduler.tick(n)
        assert controller.status is PlaybackStatus.STOPPED
        assert controller.index == 0
        assert scheduler.active_jobs == 0

    @pytest.mark.asyncio
    async def test_ticks_advance_index(
        self, controller: PlaybackController, scheduler: ManualScheduler, make_session,
    ) -> None:
        controller.load([make_session("a", 0, 4 * HOUR)])
        controller.play()
        await scheduler.tick(2)
        assert controller.index == 2
        assert controller.status is PlaybackStatus.PLAYING

    @pytest.mark.asyncio
    async def test_pause_keeps_index(
        self, controller: PlaybackController, scheduler: ManualScheduler, make_session,
    ) -> None:
        controller.load([make_session("a", 0, 4 * HOUR)])
        controller.play()
        await scheduler.tick(2)
        controller.pause()
        await scheduler.tick(3)
        assert controller.status is PlaybackStatus.PAUSED
        assert controller.index == 2
        assert scheduler.active_jobs == 0

    @pytest.mark.asyncio
    async def test_resume_after_pause(
        self, controller: PlaybackController, scheduler: ManualScheduler, make_session,
    ) -> None:
        controller.load([make_session("a", 0, 4 * HOUR)])
        controller.play()
        await scheduler.tick()
        controller.toggle()
        assert controller.status is PlaybackStatus.PAUSED
        controller.toggle()
        await scheduler.tick()
        assert controller.status is PlaybackStatus.PLAYING
        assert controller.index == 2

    def test_pause_when_stopped_is_noop(self, controller: PlaybackController, make_session) -> None:
        controller.load([make_session("a")])
        controller.pause()
        assert controller.status is PlaybackStatus.STOPPED

    def test_advance_ignored_unless_playing(self, controller: PlaybackController, make_session) -> None:
        controller.load([make_session("a", 0, 4 * HOUR)])
        assert controller.advance() is None
        assert controller.index == 0

    @pytest.mark.asyncio
    async def test_stop_rewinds(
        self, controller: PlaybackController, scheduler: ManualScheduler, make_session,
    ) -> None:
        controller.load([make_session("a", 0, 4 * HOUR)])
        controller.play()
        await scheduler.tick(2)
        controller.stop()
        assert controller.index == 0
        assert controller.status is PlaybackStatus.STOPPED
        assert scheduler.active_jobs == 0

    def test_reset_removes_rendered_frame(
        self, controller: PlaybackController, marker_sink: MagicMock, make_session,
    ) -> None:
        controller.load([make_session("a"), make_session("b", lat=1.0, lon=1.0)])
        marker_sink.reset_mock()
        controller.reset()
        removed = sorted(c.args[0] for c in marker_sink.remove.call_args_list)
        assert removed == ["a", "b"]


# ---------------------------------------------------------------------------
# Seeking / snapshots
# ---------------------------------------------------------------------------


class TestSeek:

    def test_seek_clamps(self, controller: PlaybackController, make_session) -> None:
        controller.load([make_session("a", 0, 2 * HOUR)])
        assert controller.seek(99).index == 2
        assert controller.seek(-5).index == 0

    def test_seek_on_empty_timeline(self, controller: PlaybackController) -> None:
        controller.load([])
        assert controller.seek(0) is None

    def test_seek_in_any_status(self, controller: PlaybackController, make_session) -> None:
        controller.load([make_session("a", 0, 2 * HOUR)])
        controller.seek(1)
        assert controller.status is PlaybackStatus.STOPPED
        assert controller.index == 1

    def test_seek_writes_formatted_instant(
        self, controller: PlaybackController, display_sink: MagicMock, make_session,
    ) -> None:
        controller.load([make_session("a", 0, 2 * HOUR)])
        frame = controller.seek(1)
        assert frame.label == "01/01/1970 01:00"
        display_sink.show_time.assert_called_with("01/01/1970 01:00")

    def test_label_uses_display_zone(
        self,
        marker_sink: MagicMock,
        display_sink: MagicMock,
        scheduler: ManualScheduler,
        origin,
        make_session,
    ) -> None:
        controller = PlaybackController(marker_sink, display_sink, scheduler, origin=origin, tz="Europe/Paris")
        controller.load([make_session("a", 0, HOUR)])
        assert controller.seek(0).label == "01/01/1970 01:00"

    def test_boundary_instants_inclusive(self, controller: PlaybackController, make_session) -> None:
        controller.load([make_session("a", 0, HOUR), make_session("b", HOUR, 2 * HOUR)])
        frame = controller.seek(1)
        assert frame.instant_ms == HOUR
        assert sorted(s.key for s in frame.sessions) == ["a", "b"]

    def test_frame_renders_only_active_sessions(
        self, controller: PlaybackController, marker_sink: MagicMock, make_session,
    ) -> None:
        controller.load([make_session("a", 0, HOUR), make_session("b", 2 * HOUR, 3 * HOUR)])
        marker_sink.reset_mock()
        controller.seek(0)
        marker_sink.remove.assert_called_once_with("b")
        assert [c.args[0] for c in marker_sink.upsert.call_args_list] == ["a"]

    def test_state_is_a_copy(self, controller: PlaybackController, make_session) -> None:
        controller.load([make_session("a", 0, 2 * HOUR)])
        state = controller.state
        state.timeline.clear()
        assert len(controller.timeline) == 3
