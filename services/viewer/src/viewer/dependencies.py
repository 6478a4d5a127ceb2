"""
FastAPI dependency injection providers for the StreamAtlas viewer.

The view controller is built during startup and stored on
``app.state``.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from viewer.mode import ViewController


def get_controller(request: Request) -> ViewController:
    """Return the shared ``ViewController`` from app state."""
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Viewer not initialised")
    return controller
