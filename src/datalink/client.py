"""
PlatformClient: authenticated httpx wrapper for the platform API.

Injects the bearer token on every request, logs failing calls with the
token redacted, and re-raises the original httpx error.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .config import PlatformConfig

logger = logging.getLogger(__name__)

REDACTED_AUTHORIZATION = "Bearer *********"


class PlatformClient:
    """Async HTTP client for the platform REST API."""

    def __init__(
        self,
        config: Optional[PlatformConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or PlatformConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ── Connection ───────────────────────────────────────────────

    @property
    def has_credentials(self) -> bool:
        return bool(self.config.get_token())

    def build_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Build request headers carrying the bearer token."""
        headers = {"Accept": "application/json"}
        if extra:
            headers.update(extra)
        token = self.config.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "PlatformClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ── Requests ─────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Issue one authenticated request and return the decoded JSON body.

        Args:
            method: HTTP method
            url: Absolute request URL
            params: Query parameters
            json: JSON request body
            headers: Extra headers merged over the defaults

        Returns:
            Decoded response body (None for an empty body)

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx response
        """
        merged = self.build_headers(headers)
        try:
            response = await self._get_client().request(
                method, url, params=params, json=json, headers=merged,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            redacted = dict(merged)
            if "Authorization" in redacted:
                redacted["Authorization"] = REDACTED_AUTHORIZATION
            logger.warning(
                "Platform API %s call to %s failed: %s (params=%s, headers=%s)",
                method.upper(), url, e, params, redacted,
            )
            raise

        if not response.content:
            return None
        return response.json()

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", url, params=params)

    # ── Helpers ──────────────────────────────────────────────────

    async def connectivity_check(self, base_url: Optional[str] = None) -> Dict[str, Optional[str]]:
        """
        Verify the token against the ``/user-info`` endpoint.

        Returns:
            Dict with the ``userName`` and ``email`` of the token owner
        """
        context = self.config.api_context(base_url=base_url)
        data = await self.get(context.url("user-info")) or {}
        user = data.get("user") or {}
        logger.info("Connectivity check succeeded for %s", user.get("userName"))
        return {"userName": user.get("userName"), "email": user.get("email")}
