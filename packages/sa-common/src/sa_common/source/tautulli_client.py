"""
Tautulli API client for StreamAtlas.

Async wrapper around the Tautulli ``/api/v2`` endpoint providing the
commands the viewer consumes: current activity, play history, GeoIP
lookup and server info.  Transport and HTTP errors are retried with
exponential back-off; a request that still fails raises
``SourceUnavailable``.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sa_common.utils import as_int

logger = structlog.get_logger()

_DEFAULT_MAX_ATTEMPTS = 3
_DEFAULT_TIMEOUT_S = 10.0


class SourceUnavailable(Exception):
    """Raised when the session source cannot answer a request."""


class TautulliClient:
    """Async Tautulli API client.

    Args:
        base_url: Tautulli base URL, e.g. ``http://localhost:8181``.
        api_key: Tautulli API key.
        timeout: Per-request timeout in seconds.
        max_attempts: Attempts per request before giving up.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = _DEFAULT_TIMEOUT_S,
        max_attempts: int = _DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._client: httpx.AsyncClient | None = None

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api/v2"

    # ── lifecycle ──

    async def _get_client(self) -> httpx.AsyncClient:
        """Return (and lazily create) the shared ``httpx.AsyncClient``."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # ── transport ──

    async def _get_with_retry(self, params: dict[str, Any]) -> httpx.Response:
        @retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.TransportError)),
            reraise=True,
        )
        async def _inner() -> httpx.Response:
            client = await self._get_client()
            resp = await client.get(self.api_url, params=params)
            resp.raise_for_status()
            return resp

        return await _inner()

    async def request(self, cmd: str, **params: Any) -> Any:
        """Run an API command and return its ``response.data``.

        Raises:
            SourceUnavailable: On transport/HTTP failure after retries, an
                unparseable body, or a non-success API result.
        """
        query = {"apikey": self.api_key, "cmd": cmd, **params}
        log = logger.bind(cmd=cmd)
        try:
            resp = await self._get_with_retry(query)
            body = resp.json()
        except (httpx.HTTPStatusError, httpx.TransportError) as exc:
            log.warning("tautulli_request_failed", error=str(exc))
            raise SourceUnavailable(f"{cmd}: {exc}") from exc
        except ValueError as exc:
            log.warning("tautulli_invalid_body", error=str(exc))
            raise SourceUnavailable(f"{cmd}: invalid JSON body") from exc

        response = body.get("response") if isinstance(body, dict) else None
        if not isinstance(response, dict) or response.get("result") != "success":
            message = (response or {}).get("message") or "API request failed"
            log.warning("tautulli_api_error", message=message)
            raise SourceUnavailable(f"{cmd}: {message}")
        return response.get("data")

    # ── commands ──

    async def get_activity(self) -> list[dict[str, Any]]:
        """Return the raw records of the sessions currently playing."""
        data = await self.request("get_activity")
        if not isinstance(data, dict):
            return []
        return list(data.get("sessions") or [])

    async def get_history(self, length: int = 1000) -> tuple[list[dict[str, Any]], int | None]:
        """Return the newest *length* history records and the source total.

        Returns:
            ``(records, records_total)``; the total is ``None`` when the
            source does not report it.
        """
        data = await self.request(
            "get_history",
            length=length,
            order_column="date",
            order_dir="desc",
            include_activity=1,
        )
        if not isinstance(data, dict):
            return [], None
        total = data.get("recordsTotal")
        return list(data.get("data") or []), as_int(total) if total is not None else None

    async def get_geoip_lookup(self, ip_address: str) -> dict[str, Any] | None:
        data = await self.request("get_geoip_lookup", ip_address=ip_address)
        return data if isinstance(data, dict) else None

    async def get_server_info(self) -> dict[str, Any] | None:
        data = await self.request("get_server_info")
        return data if isinstance(data, dict) else None
