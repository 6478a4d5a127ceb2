"""
Live session reconciler for StreamAtlas.

Maps each polled batch of raw activity records onto stable marker
entities.  Every cycle the batch is normalized, key collisions are
disambiguated, coincident locations are spread onto a ring, and the
result is diffed against the previous snapshot.  The snapshot is then
replaced as a whole, so keys that are no longer reported can never
linger.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

import structlog

from sa_common.models.session import GeoPoint, Location, ReconciliationDelta, Session
from sa_common.normalizer import RawSession, SessionNormalizer
from sa_common.placement import COORDINATE_PRECISION, dedupe_keys, diff_batches, place_batch

logger = structlog.get_logger()


class StreamReconciler:
    """Owns the previous live snapshot and produces per-poll deltas.

    Args:
        origin: Server coordinate, used as the fallback origin for
            sessions without a geolocation.
        normalizer: Live-mode normalizer (a default one is created).
        precision: Decimal places used to detect coincident locations.
    """

    def __init__(
        self,
        origin: GeoPoint,
        normalizer: SessionNormalizer | None = None,
        *,
        precision: int = COORDINATE_PRECISION,
    ) -> None:
        self.origin = origin
        self._normalizer = normalizer or SessionNormalizer(historical=False)
        self._precision = precision
        self._state: dict[str, Session] = {}

    # ── public API ──

    def reconcile(
        self,
        current_raw: Sequence[RawSession],
        locations: Mapping[str, Location | None] | None = None,
        *,
        now_ms: int | None = None,
    ) -> ReconciliationDelta:
        """Reconcile a freshly polled batch against the previous one.

        Args:
            current_raw: Raw activity records of this poll.
            locations: Resolved location per client address; addresses
                absent or mapped to ``None`` get a synthesized location.
            now_ms: Clock for keys of records without a session key.

        Returns:
            The add/update/remove delta for this cycle.
        """
        locations = locations or {}
        total = len(current_raw)
        normalized = [
            self._normalizer.normalize(
                raw,
                self.origin,
                index,
                total,
                geo=locations.get(str(raw.get("ip_address") or "")),
                now_ms=now_ms,
            )
            for index, raw in enumerate(current_raw)
        ]
        placed = place_batch(dedupe_keys(normalized), precision=self._precision)
        self._state, delta = diff_batches(self._state, placed)

        logger.debug(
            "live_batch_reconciled",
            sessions=len(placed),
            added=len(delta.added),
            updated=len(delta.updated),
            removed=len(delta.removed),
        )
        return delta

    def reset(self) -> ReconciliationDelta:
        """Forget the snapshot; the returned delta removes every known key."""
        delta = ReconciliationDelta(removed=list(self._state))
        self._state = {}
        return delta

    @property
    def snapshot(self) -> Mapping[str, Session]:
        """Read-only view of the current snapshot keyed by session key."""
        return MappingProxyType(self._state)

    @property
    def sessions(self) -> list[Session]:
        return list(self._state.values())
