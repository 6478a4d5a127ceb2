"""
History and playback API router for StreamAtlas.

Loads a history window, returns its statistics and drives the playback
state machine (play, pause, stop, seek).  Loading and the playback
controls require the history view to be active.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Depends, HTTPException, Query

from sa_common.models.stats import HistoryStats
from sa_common.source.tautulli_client import SourceUnavailable

from viewer.dependencies import get_controller
from viewer.mode import ModeConflict, ViewController
from viewer.schemas import HistoryLoadResponse, PlaybackResponse

router = APIRouter(tags=["history"])


def _playback_response(controller: ViewController) -> PlaybackResponse:
    playback = controller.playback
    response = PlaybackResponse(
        status=playback.status,
        index=playback.index,
        timeline_length=len(playback.timeline),
    )
    if playback.timeline:
        frame = playback.frame_at(playback.index)
        response.instant_ms = frame.instant_ms
        response.label = frame.label
        response.active_sessions = len(frame.sessions)
    return response


# ── History ──


@router.post("/history/load", response_model=HistoryLoadResponse)
async def load_history(
    days: int | None = Query(default=None, ge=1),
    controller: ViewController = Depends(get_controller),
) -> HistoryLoadResponse:
    try:
        stats = await controller.load_history(days)
    except ModeConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except SourceUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return HistoryLoadResponse(
        days=controller.loaded_days or controller.history_days,
        sessions=stats.total_sessions,
        timeline_length=len(controller.playback.timeline),
        stats=stats,
    )


@router.get("/history/stats", response_model=HistoryStats)
async def history_stats(controller: ViewController = Depends(get_controller)) -> HistoryStats:
    return controller.stats


# ── Playback ──


@router.get("/playback", response_model=PlaybackResponse)
async def playback_state(controller: ViewController = Depends(get_controller)) -> PlaybackResponse:
    return _playback_response(controller)


@router.post("/playback/play", response_model=PlaybackResponse)
async def play(controller: ViewController = Depends(get_controller)) -> PlaybackResponse:
    _run(controller.play)
    return _playback_response(controller)


@router.post("/playback/pause", response_model=PlaybackResponse)
async def pause(controller: ViewController = Depends(get_controller)) -> PlaybackResponse:
    _run(controller.pause)
    return _playback_response(controller)


@router.post("/playback/stop", response_model=PlaybackResponse)
async def stop(controller: ViewController = Depends(get_controller)) -> PlaybackResponse:
    _run(controller.stop)
    return _playback_response(controller)


@router.post("/playback/seek/{index}", response_model=PlaybackResponse)
async def seek(index: int, controller: ViewController = Depends(get_controller)) -> PlaybackResponse:
    try:
        controller.seek(index)
    except ModeConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _playback_response(controller)


def _run(action: Callable[[], object]) -> None:
    try:
        action()
    except ModeConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
