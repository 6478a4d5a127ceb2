"""
Environment-based configuration management for StreamAtlas.

Uses pydantic-settings to load configuration values from environment
variables and .env files. Only service entry points read settings from
this module; components receive the values they need as explicit
constructor arguments.

All environment variables are prefixed with ``SA_`` to avoid collisions.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sa_common.models.session import GeoPoint

# Seconds between two playback frames.  Not user-configurable.
PLAYBACK_FRAME_INTERVAL_S: float = 1.0


class Settings(BaseSettings):
    """Central configuration loaded from ``SA_``-prefixed environment variables.

    Attributes:
        tautulli_url: Base URL of the Tautulli instance.
        tautulli_api_key: Tautulli API key.
        server_lat: Latitude of the media server (fallback origin).
        server_lon: Longitude of the media server (fallback origin).
        refresh_interval_s: Seconds between two live polls.
        history_days: Default history window in days.
        history_page_length: Maximum history records fetched per load.
        display_timezone: IANA zone used for day/hour rollups and labels.
        request_timeout_s: Per-request timeout for the session source.
        api_host: Bind address for the viewer service.
        api_port: Bind port for the viewer service.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Render log lines as JSON instead of console output.
    """

    model_config = SettingsConfigDict(
        env_prefix="SA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Session source ──
    tautulli_url: str = Field(
        default="http://localhost:8181",
        description="Base URL of the Tautulli instance.",
    )
    tautulli_api_key: str = Field(default="", description="Tautulli API key.")
    request_timeout_s: float = Field(
        default=10.0,
        gt=0.0,
        description="Per-request timeout for the session source.",
    )

    # ── Map origin ──
    server_lat: float = Field(
        default=48.856614,
        ge=-90.0,
        le=90.0,
        description="Latitude of the media server.",
    )
    server_lon: float = Field(
        default=2.352222,
        ge=-180.0,
        le=180.0,
        description="Longitude of the media server.",
    )

    # ── Live polling ──
    refresh_interval_s: int = Field(
        default=30,
        ge=1,
        description="Seconds between two live polls.",
    )

    # ── History ──
    history_days: int = Field(default=10, ge=1, description="Default history window in days.")
    history_page_length: int = Field(
        default=1000,
        ge=1,
        description="Maximum history records fetched per load.",
    )
    display_timezone: str = Field(
        default="UTC",
        description="IANA zone used for day/hour rollups and labels.",
    )

    # ── Viewer API ──
    api_host: str = Field(default="0.0.0.0", description="Viewer service bind address.")
    api_port: int = Field(default=8188, ge=1, le=65535, description="Viewer service bind port.")

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Logging level.")
    log_json: bool = Field(default=True, description="Render log lines as JSON.")

    @property
    def server_origin(self) -> GeoPoint:
        """The configured server coordinate."""
        return GeoPoint(lat=self.server_lat, lon=self.server_lon)

    @property
    def is_configured(self) -> bool:
        """``True`` once an API key has been provided."""
        return bool(self.tautulli_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    Returns:
        The global ``Settings`` instance.
    """
    return Settings()
