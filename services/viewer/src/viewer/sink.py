"""
WebSocket marker sink for StreamAtlas.

Implements the ``MarkerSink`` and ``DisplaySink`` protocols on top of a
set of per-client message queues.  The sink keeps the marker set and the
last displayed time itself, so a map client connecting mid-session first
receives the current state and then the live stream of changes.

Messages are JSON-ready dicts:

* ``{"type": "upsert", "key", "position": {"lat", "lon"}, "payload"}``
* ``{"type": "remove", "key"}``
* ``{"type": "time", "text"}``
* ``{"type": "lagging"}``: last message to a client whose backlog
  reached ``max_pending``; it is unsubscribed and should reconnect.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from sa_common.models.session import GeoPoint

logger = structlog.get_logger()

Message = dict[str, Any]

DEFAULT_MAX_PENDING = 1000
LAGGING: Message = {"type": "lagging"}


class WebSocketMarkerSink:
    """Fan marker and clock updates out to subscribed map clients.

    Args:
        max_pending: Messages a client may have queued beyond its initial
            state replay before it is dropped as lagging.
    """

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING) -> None:
        self.max_pending = max_pending
        self._markers: dict[str, Message] = {}
        self._time: str | None = None
        self._clients: set[asyncio.Queue[Message]] = set()

    # ── MarkerSink / DisplaySink ──

    def upsert(self, key: str, position: GeoPoint, payload: dict[str, Any]) -> None:
        message: Message = {
            "type": "upsert",
            "key": key,
            "position": {"lat": position.lat, "lon": position.lon},
            "payload": payload,
        }
        self._markers[key] = message
        self._broadcast(message)

    def remove(self, key: str) -> None:
        if self._markers.pop(key, None) is None:
            logger.debug("marker_remove_unknown_key", key=key)
        self._broadcast({"type": "remove", "key": key})

    def show_time(self, text: str) -> None:
        self._time = text
        self._broadcast({"type": "time", "text": text})

    # ── subscriptions ──

    def subscribe(self) -> asyncio.Queue[Message]:
        """Register a client; its queue is pre-filled with the current state."""
        replay = len(self._markers) + 1
        queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=replay + self.max_pending)
        for message in self._markers.values():
            queue.put_nowait(message)
        if self._time is not None:
            queue.put_nowait({"type": "time", "text": self._time})
        self._clients.add(queue)
        logger.info("marker_client_subscribed", clients=len(self._clients))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Message]) -> None:
        self._clients.discard(queue)
        logger.info("marker_client_unsubscribed", clients=len(self._clients))

    @property
    def markers(self) -> dict[str, Message]:
        """Current marker set keyed by session key."""
        return dict(self._markers)

    @property
    def time_text(self) -> str | None:
        return self._time

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def _broadcast(self, message: Message) -> None:
        for queue in list(self._clients):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                self._drop_lagging(queue)

    def _drop_lagging(self, queue: asyncio.Queue[Message]) -> None:
        """Unsubscribe a client whose backlog is full and tell it so."""
        self._clients.discard(queue)
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(LAGGING)
        logger.warning("marker_client_lagging", clients=len(self._clients), max_pending=self.max_pending)
