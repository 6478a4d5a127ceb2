"""
Shared utility functions for StreamAtlas.

Display formatting helpers (bandwidth, media titles, durations,
timeline instants) and lenient coercion of raw source values.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sa_common.models.session import MediaInfo


def as_int(value: Any, default: int = 0) -> int:
    """Coerce *value* to ``int``; *default* when missing or malformed."""
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def as_text(*candidates: Any) -> str | None:
    """Return the first non-empty candidate as a string."""
    for value in candidates:
        if value not in (None, ""):
            return str(value)
    return None


def get_zone(name: str | None) -> ZoneInfo:
    """Resolve an IANA zone name, falling back to UTC."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def from_epoch_ms(instant_ms: int, tz: ZoneInfo | str = "UTC") -> datetime:
    zone = tz if isinstance(tz, ZoneInfo) else get_zone(tz)
    return datetime.fromtimestamp(instant_ms / 1000, tz=timezone.utc).astimezone(zone)


def format_instant(instant_ms: int, tz: ZoneInfo | str = "UTC") -> str:
    """Format a timeline instant as ``dd/mm/YYYY HH:MM``."""
    return from_epoch_ms(instant_ms, tz).strftime("%d/%m/%Y %H:%M")


def format_bandwidth(kbps: int | None) -> str:
    """Format a kbps figure as megabits, e.g. ``"12.3 Mbps"``."""
    if not kbps:
        return "0 Mbps"
    return f"{kbps / 1000:.1f} Mbps"


def format_media_title(media: MediaInfo) -> str:
    """Title as shown in tooltips and lists, by media type."""
    if media.media_type == "episode":
        return f"{media.grandparent_title} - {media.parent_title} - {media.title}"
    if media.media_type == "movie":
        return f"{media.title} ({media.year or 'N/A'})"
    if media.media_type == "track":
        return f"{media.grandparent_title} - {media.title}"
    return media.title


def format_duration(duration_ms: int) -> str:
    """Format a duration as ``"1h 5min"`` or ``"5min"``."""
    seconds = max(0, duration_ms) // 1000
    hours, rest = divmod(seconds, 3600)
    minutes = rest // 60
    if hours > 0:
        return f"{hours}h {minutes}min"
    return f"{minutes}min"
