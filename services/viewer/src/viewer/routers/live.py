"""
Live view API router for StreamAtlas.

Exposes the live statistics panel: active users, total bandwidth, last
update time and source connection status.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from live.poller import LiveSummary

from viewer.dependencies import get_controller
from viewer.mode import ViewController

router = APIRouter(prefix="/live", tags=["live"])


@router.get("", response_model=LiveSummary)
async def live_summary(controller: ViewController = Depends(get_controller)) -> LiveSummary:
    return controller.poller.summary()
