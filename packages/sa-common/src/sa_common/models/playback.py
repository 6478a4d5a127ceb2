"""
Playback state models for StreamAtlas.

Defines the historical playback state machine's status enum, its state
record, and the per-frame active-session snapshot.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field

from sa_common.models.session import Session


class PlaybackStatus(str, enum.Enum):
    """Status of the history playback state machine."""

    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class PlaybackState(BaseModel):
    """Current playback position over a timeline.

    Attributes:
        status: State machine status.
        index: Current timeline index.
        timeline: Strictly increasing instants (epoch ms).
    """

    status: PlaybackStatus = PlaybackStatus.STOPPED
    index: int = Field(default=0, ge=0)
    timeline: list[int] = Field(default_factory=list)

    @property
    def current_instant(self) -> int | None:
        if not self.timeline:
            return None
        return self.timeline[self.index]


class PlaybackFrame(BaseModel):
    """Sessions active at one timeline instant.

    Attributes:
        index: Timeline index of the frame.
        instant_ms: Timeline instant (epoch ms).
        label: Human-readable instant.
        sessions: Sessions whose closed interval contains the instant.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    instant_ms: int
    label: str
    sessions: list[Session] = Field(default_factory=list)
