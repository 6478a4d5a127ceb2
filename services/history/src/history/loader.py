"""
History loader for StreamAtlas.

Fetches the newest play-history records from the session source, keeps
those started inside the requested day window, resolves the geolocation
of each distinct client address and normalizes the records into
historical ``Session`` entities ordered oldest first.
"""

from __future__ import annotations

import time
from typing import Any, Protocol

import structlog

from sa_common.geoip import GeoResolver
from sa_common.models.session import GeoPoint, Session
from sa_common.normalizer import SessionNormalizer
from sa_common.utils import as_int

logger = structlog.get_logger()

DAY_MS: int = 86_400_000


class HistorySource(Protocol):
    async def get_history(self, length: int = 1000) -> tuple[list[dict[str, Any]], int | None]: ...


class HistoryLoader:
    """Load a window of play history.

    Args:
        source: Session source exposing ``get_history(length)``.
        resolver: Geolocation resolver.
        origin: Server coordinate, centre of synthesized locations.
        page_length: Maximum number of records fetched per load.
    """

    def __init__(
        self,
        source: HistorySource,
        resolver: GeoResolver,
        origin: GeoPoint,
        *,
        page_length: int = 1000,
    ) -> None:
        self._source = source
        self._resolver = resolver
        self.origin = origin
        self.page_length = page_length
        self._normalizer = SessionNormalizer(historical=True)

    async def load(self, days: int, now_ms: int | None = None) -> list[Session]:
        """Return the sessions started within the last *days* days.

        Raises:
            SourceUnavailable: When the history cannot be fetched.
        """
        if days < 1:
            raise ValueError("days must be at least 1")
        now = now_ms if now_ms is not None else int(time.time() * 1000)
        cutoff_s = (now - days * DAY_MS) // 1000

        log = logger.bind(days=days)
        records, total = await self._source.get_history(length=self.page_length)
        if total is not None and total > len(records):
            log.warning(
                "history_truncated",
                fetched=len(records),
                available=total,
            )

        in_window = [r for r in records if as_int(r.get("started"), default=-1) >= cutoff_s]
        addresses = [str(r.get("ip_address") or "") for r in in_window]
        locations = await self._resolver.resolve_many(addresses)

        batch_size = len(in_window)
        sessions = [
            self._normalizer.normalize(
                raw,
                self.origin,
                index,
                batch_size,
                geo=locations.get(str(raw.get("ip_address") or "")),
                now_ms=now,
            )
            for index, raw in enumerate(in_window)
        ]
        sessions.sort(key=lambda s: (s.start_ms or 0, s.key))
        log.info("history_loaded", fetched=len(records), sessions=len(sessions))
        return sessions
