"""
Session data models for StreamAtlas.

Defines the canonical ``Session`` entity produced by the normalizer for
both live and historical playback records, together with its location,
media and stream sub-models.  Instants are integer epoch milliseconds.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GeoPoint(BaseModel):
    """A bare map coordinate in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


class Location(BaseModel):
    """A resolved (or synthesized) geolocation.

    Attributes:
        lat: Latitude in decimal degrees.
        lon: Longitude in decimal degrees.
        city: City name, ``"Unknown"`` when not known.
        region: Region / state name.
        country: Country name, ``"Unknown"`` when not known.
        isp: Internet service provider.
    """

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)
    city: str = "Unknown"
    region: str = ""
    country: str = "Unknown"
    isp: str = "Unknown ISP"

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)


class MediaInfo(BaseModel):
    """What is being played."""

    model_config = ConfigDict(frozen=True)

    title: str
    media_type: str | None = None
    year: int | None = None
    parent_title: str | None = None
    grandparent_title: str | None = None


class StreamInfo(BaseModel):
    """How it is being played.

    Attributes:
        bandwidth_kbps: Stream bandwidth in kbps.
        quality: Quality profile or transcode decision.
        player: Client player name.
        platform: Client platform name.
        state: Playback state reported by the source (live only).
    """

    model_config = ConfigDict(frozen=True)

    bandwidth_kbps: int = Field(default=0, ge=0)
    quality: str = "Unknown"
    player: str = "Unknown Player"
    platform: str = "Unknown Platform"
    state: str | None = None


class Session(BaseModel):
    """One playback occurrence by one user, live or historical.

    Attributes:
        key: Unique key of this occurrence within a batch.
        username: Display name of the user.
        user_id: Source user identifier.
        ip_address: Client address as reported by the source.
        location: Resolved or synthesized location; always set.
        media: Media being played.
        stream: Stream characteristics.
        start_ms: Start instant (epoch ms).
        stop_ms: Stop instant (epoch ms); ``None`` for live sessions.
        paused_ms: Total time spent paused.
        is_synthesized_location: ``True`` when ``location`` is a placeholder.
        position: Rendered marker coordinate after collision offsets.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    username: str = "Unknown User"
    user_id: str | None = None
    ip_address: str = ""
    location: Location
    media: MediaInfo
    stream: StreamInfo = Field(default_factory=StreamInfo)
    start_ms: int | None = None
    stop_ms: int | None = None
    paused_ms: int = Field(default=0, ge=0)
    is_synthesized_location: bool = False
    position: GeoPoint | None = None

    @model_validator(mode="after")
    def _check_interval(self) -> Session:
        if self.start_ms is not None and self.stop_ms is not None and self.start_ms > self.stop_ms:
            raise ValueError("start_ms must not be after stop_ms")
        return self

    @property
    def marker_position(self) -> GeoPoint:
        """Where the marker is drawn: the offset position, else the location."""
        return self.position or self.location.point

    @property
    def watched_ms(self) -> int:
        """Watched time, ``max(0, stop - start - paused)``; 0 without both times."""
        if self.start_ms is None or self.stop_ms is None:
            return 0
        return max(0, self.stop_ms - self.start_ms - self.paused_ms)

    def is_active_at(self, instant_ms: int) -> bool:
        """Closed-interval membership test used by playback snapshots."""
        if self.start_ms is None or self.stop_ms is None:
            return False
        return self.start_ms <= instant_ms <= self.stop_ms


class ReconciliationDelta(BaseModel):
    """Add/update/remove transition between two successive snapshots."""

    model_config = ConfigDict(frozen=True)

    added: list[Session] = Field(default_factory=list)
    updated: list[Session] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.removed)
