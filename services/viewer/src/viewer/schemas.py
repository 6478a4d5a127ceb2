"""
Viewer API schemas for StreamAtlas.

Pydantic request/response models for the mode, visibility, history and
playback endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from sa_common.models.playback import PlaybackStatus
from sa_common.models.stats import HistoryStats


class ModeResponse(BaseModel):
    mode: str
    visible: bool
    live_running: bool
    playback_status: PlaybackStatus


class VisibilityRequest(BaseModel):
    visible: bool


class HistoryLoadResponse(BaseModel):
    days: int
    sessions: int
    timeline_length: int
    stats: HistoryStats


class PlaybackResponse(BaseModel):
    status: PlaybackStatus
    index: int
    timeline_length: int
    instant_ms: int | None = None
    label: str | None = None
    active_sessions: int = Field(default=0, ge=0)
