"""
sa-common: Shared library for StreamAtlas.

Provides the session data models, configuration management, structured
logging, Prometheus metrics, the tick scheduler, session normalization,
marker placement, geolocation and the Tautulli source client used by the
live, history and viewer services.
"""

from sa_common.config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
