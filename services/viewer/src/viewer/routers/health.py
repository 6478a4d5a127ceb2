"""
Health check endpoint for the StreamAtlas viewer.

Reports service status, the active view mode and whether the last live
poll reached the session source.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Return basic health information.

    Returns:
        A dict with ``status``, ``service`` and, once started, ``mode``
        and ``source_connected`` keys.
    """
    body: dict[str, Any] = {"status": "ok", "service": "viewer"}
    controller = getattr(request.app.state, "controller", None)
    if controller is not None:
        body["mode"] = controller.mode.value
        body["source_connected"] = controller.poller.connected
    return body
