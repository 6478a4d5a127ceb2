"""
History statistics models for StreamAtlas.

Rollups computed over a batch of historical sessions for the summary
panels: per user, per country, per calendar day and per hour of day.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from sa_common.models.session import Location


def _empty_hours() -> list[int]:
    return [0] * 24


class UserStats(BaseModel):
    """Per-user rollup.

    Attributes:
        session_count: Number of sessions.
        watch_ms: Total watched time.
        last_known_location: Location of the user's latest session.
    """

    session_count: int = 0
    watch_ms: int = 0
    last_known_location: Location | None = None


class HistoryStats(BaseModel):
    """Aggregate statistics over a history batch.

    Attributes:
        total_sessions: Number of sessions in the batch.
        total_watch_ms: Sum of per-session watched time.
        unique_users: Number of distinct usernames.
        unique_countries: Number of distinct countries.
        by_user: Per-username rollups.
        by_country: Session count per country.
        by_day: Session count per ``YYYY-MM-DD`` start day.
        by_hour: Session count per start hour of day (24 buckets).
    """

    total_sessions: int = 0
    total_watch_ms: int = 0
    unique_users: int = 0
    unique_countries: int = 0
    by_user: dict[str, UserStats] = Field(default_factory=dict)
    by_country: dict[str, int] = Field(default_factory=dict)
    by_day: dict[str, int] = Field(default_factory=dict)
    by_hour: list[int] = Field(default_factory=_empty_hours, min_length=24, max_length=24)

    def top_users(self, n: int = 10) -> list[tuple[str, UserStats]]:
        """Return the *n* users with the most watch time, highest first."""
        ranked = sorted(self.by_user.items(), key=lambda item: (-item[1].watch_ms, item[0]))
        return ranked[:n]
