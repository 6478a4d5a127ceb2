"""
Live poll driver for StreamAtlas.

Fetches current activity from the session source on a fixed interval,
resolves client geolocation, reconciles the batch and pushes the delta to
the marker sink.  A failed fetch leaves the previous markers on screen
and flips the connection status to disconnected.

Polls never overlap: a tick arriving while a poll is still in flight is
skipped.  ``stop()`` also invalidates any poll in flight, so no
reconciliation happens after the driver has been stopped.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Protocol

import structlog
from pydantic import BaseModel, Field

from sa_common.geoip import GeoResolver
from sa_common.markers import MarkerSink, apply_delta
from sa_common.metrics import ACTIVE_SESSIONS, POLL_CYCLES
from sa_common.models.session import ReconciliationDelta, Session
from sa_common.scheduler import CancellationHandle, Scheduler
from sa_common.source.tautulli_client import SourceUnavailable

from live.reconciler import StreamReconciler

logger = structlog.get_logger()


class ActivitySource(Protocol):
    async def get_activity(self) -> list[dict[str, Any]]: ...


class LiveSummary(BaseModel):
    """Figures shown in the live statistics panel.

    Attributes:
        connected: Whether the last poll reached the source.
        last_update_ms: Epoch ms of the last successful poll.
        last_error: Message of the last failed poll.
        active_users: Number of live sessions.
        total_bandwidth_kbps: Sum of live session bandwidths.
        sessions: Live sessions, highest bandwidth first.
    """

    connected: bool = False
    last_update_ms: int | None = None
    last_error: str | None = None
    active_users: int = 0
    total_bandwidth_kbps: int = 0
    sessions: list[Session] = Field(default_factory=list)


class LivePoller:
    """Periodic live-activity poll driver.

    Args:
        source: Session source exposing ``get_activity()``.
        resolver: Geolocation resolver.
        reconciler: Live reconciler owning the snapshot.
        sink: Marker sink receiving the deltas.
        scheduler: Tick scheduler.
        interval_s: Seconds between polls.
    """

    def __init__(
        self,
        source: ActivitySource,
        resolver: GeoResolver,
        reconciler: StreamReconciler,
        sink: MarkerSink,
        scheduler: Scheduler,
        *,
        interval_s: float,
    ) -> None:
        self._source = source
        self._resolver = resolver
        self._reconciler = reconciler
        self._sink = sink
        self._scheduler = scheduler
        self.interval_s = interval_s
        self._handle: CancellationHandle | None = None
        self._lock = asyncio.Lock()
        self._generation = 0

        self.connected = False
        self.last_update_ms: int | None = None
        self.last_error: str | None = None

    # ── lifecycle ──

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    async def start(self) -> None:
        """Poll immediately, then every ``interval_s`` until stopped.

        A poll left in flight by an earlier ``stop()`` is waited out
        first, since its result is discarded.  Starting a running poller
        is a no-op.
        """
        if self.running:
            logger.info("live_poller_already_running")
            return
        self._handle = self._scheduler.schedule(self.interval_s, self.poll_once)
        logger.info("live_poller_started", interval_s=self.interval_s)
        if self._lock.locked():
            logger.debug("live_poller_awaiting_stale_poll")
            async with self._lock:
                pass
        await self.poll_once()

    def stop(self) -> None:
        """Cancel the schedule and invalidate any poll in flight."""
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.info("live_poller_stopped")

    # ── polling ──

    async def poll_once(self, *, now_ms: int | None = None) -> ReconciliationDelta | None:
        """Run one fetch -> resolve -> reconcile -> render cycle.

        Returns:
            The applied delta, or ``None`` when the cycle was skipped,
            discarded, or the source was unavailable.
        """
        if self._lock.locked():
            logger.debug("live_poll_skipped_in_flight")
            POLL_CYCLES.labels(outcome="skipped").inc()
            return None

        async with self._lock:
            generation = self._generation
            try:
                records = await self._source.get_activity()
            except SourceUnavailable as exc:
                self.connected = False
                self.last_error = str(exc)
                POLL_CYCLES.labels(outcome="source_unavailable").inc()
                logger.warning("live_poll_source_unavailable", error=str(exc))
                return None

            addresses = [str(record.get("ip_address") or "") for record in records]
            locations = await self._resolver.resolve_many(addresses)

            if generation != self._generation:
                POLL_CYCLES.labels(outcome="discarded").inc()
                logger.debug("live_poll_discarded")
                return None

            now = now_ms if now_ms is not None else int(time.time() * 1000)
            delta = self._reconciler.reconcile(records, locations, now_ms=now)
            apply_delta(self._sink, delta, self._reconciler.origin)

            self.connected = True
            self.last_error = None
            self.last_update_ms = now
            ACTIVE_SESSIONS.set(len(self._reconciler.snapshot))
            POLL_CYCLES.labels(outcome="ok").inc()
            logger.info(
                "live_poll_complete",
                sessions=len(records),
                added=len(delta.added),
                removed=len(delta.removed),
            )
            return delta

    def clear(self) -> None:
        """Drop the live snapshot and remove its markers from the sink."""
        apply_delta(self._sink, self._reconciler.reset(), self._reconciler.origin)
        ACTIVE_SESSIONS.set(0)

    def summary(self) -> LiveSummary:
        sessions = sorted(
            self._reconciler.sessions,
            key=lambda s: s.stream.bandwidth_kbps,
            reverse=True,
        )
        return LiveSummary(
            connected=self.connected,
            last_update_ms=self.last_update_ms,
            last_error=self.last_error,
            active_users=len(sessions),
            total_bandwidth_kbps=sum(s.stream.bandwidth_kbps for s in sessions),
            sessions=sessions,
        )
