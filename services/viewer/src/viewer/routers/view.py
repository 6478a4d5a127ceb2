"""
View mode API router for StreamAtlas.

Switches between the live and history views and relays page visibility
changes from the map client.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from sa_common.source.tautulli_client import SourceUnavailable

from viewer.dependencies import get_controller
from viewer.mode import ViewController, ViewMode
from viewer.schemas import ModeResponse, VisibilityRequest

router = APIRouter(tags=["view"])


def _mode_response(controller: ViewController) -> ModeResponse:
    return ModeResponse(
        mode=controller.mode.value,
        visible=controller.visible,
        live_running=controller.poller.running,
        playback_status=controller.playback.status,
    )


@router.get("/mode", response_model=ModeResponse)
async def get_mode(controller: ViewController = Depends(get_controller)) -> ModeResponse:
    return _mode_response(controller)


@router.post("/mode/{mode}", response_model=ModeResponse)
async def set_mode(
    mode: ViewMode,
    days: int | None = Query(default=None, ge=1),
    controller: ViewController = Depends(get_controller),
) -> ModeResponse:
    if mode is ViewMode.LIVE:
        await controller.switch_to_live()
    else:
        try:
            await controller.switch_to_history(days)
        except SourceUnavailable as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
    return _mode_response(controller)


@router.post("/visibility", response_model=ModeResponse)
async def set_visibility(
    body: VisibilityRequest,
    controller: ViewController = Depends(get_controller),
) -> ModeResponse:
    await controller.set_visible(body.visible)
    return _mode_response(controller)
