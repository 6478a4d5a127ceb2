"""Session-source clients for StreamAtlas."""

from sa_common.source.tautulli_client import SourceUnavailable, TautulliClient

__all__ = ["SourceUnavailable", "TautulliClient"]
