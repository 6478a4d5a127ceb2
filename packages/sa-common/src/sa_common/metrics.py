"""
Prometheus metrics helpers for StreamAtlas.

Shared metric definitions for the live poller, the geolocation
resolver and the history playback driver.  Services expose them through
``prometheus_client.make_asgi_app()`` mounted at ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

POLL_CYCLES = Counter(
    "streamatlas_poll_cycles_total",
    "Live poll cycles by outcome.",
    ["outcome"],
)
ACTIVE_SESSIONS = Gauge(
    "streamatlas_active_sessions",
    "Live sessions in the latest reconciled snapshot.",
)
GEOIP_LOOKUPS = Counter(
    "streamatlas_geoip_lookups_total",
    "Geolocation lookups by result.",
    ["result"],
)
PLAYBACK_FRAMES = Counter(
    "streamatlas_playback_frames_total",
    "History playback frames rendered.",
)
