"""
History statistics aggregation for StreamAtlas.

Computes the summary-panel rollups over a loaded history batch.  The
aggregation is pure and independent of input order.
"""

from __future__ import annotations

from collections.abc import Iterable

from sa_common.models.session import Session
from sa_common.models.stats import HistoryStats, UserStats
from sa_common.utils import from_epoch_ms, get_zone


class HistoryStatsAggregator:
    """Aggregate history sessions into ``HistoryStats``.

    Args:
        tz: IANA zone used for the per-day and per-hour buckets.
    """

    def __init__(self, tz: str = "UTC") -> None:
        self._zone = get_zone(tz)

    def aggregate(self, sessions: Iterable[Session]) -> HistoryStats:
        """Return the rollups for *sessions*.

        Sessions without a start instant count towards the totals but not
        towards the day and hour buckets.
        """
        ordered = sorted(sessions, key=lambda s: s.key)
        by_user: dict[str, UserStats] = {}
        latest: dict[str, Session] = {}
        by_country: dict[str, int] = {}
        by_day: dict[str, int] = {}
        by_hour = [0] * 24
        total_watch = 0

        for session in ordered:
            watched = session.watched_ms
            total_watch += watched

            user = by_user.setdefault(session.username, UserStats())
            user.session_count += 1
            user.watch_ms += watched
            current = latest.get(session.username)
            if current is None or _recency(session) > _recency(current):
                latest[session.username] = session

            country = session.location.country
            by_country[country] = by_country.get(country, 0) + 1

            if session.start_ms is not None:
                started = from_epoch_ms(session.start_ms, self._zone)
                day = started.strftime("%Y-%m-%d")
                by_day[day] = by_day.get(day, 0) + 1
                by_hour[started.hour] += 1

        for name, session in latest.items():
            by_user[name].last_known_location = session.location

        return HistoryStats(
            total_sessions=len(ordered),
            total_watch_ms=total_watch,
            unique_users=len(by_user),
            unique_countries=len(by_country),
            by_user=by_user,
            by_country=by_country,
            by_day=dict(sorted(by_day.items())),
            by_hour=by_hour,
        )


def _recency(session: Session) -> tuple[int, str]:
    return (session.start_ms if session.start_ms is not None else -1, session.key)
