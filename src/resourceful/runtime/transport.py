"""
HTTP transport for calling resourceful services.

Thin wrapper over httpx.AsyncClient with the service defaults applied to
every request.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..core.errors import TransportError

logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    "Content-Type": "application/vnd.piksel+json",
    "Accept": "application/json",
}


class Transport:
    """
    HTTP client for resourceful services.

    Usage:
        transport = Transport(token="...")
        json = await transport.get("https://host/data/contents?owner=acme")
        await transport.post(url, json={"contents": [...]})
        await transport.close()
    """

    def __init__(
        self,
        timeout: float = 30.0,
        token: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize transport.

        Args:
            timeout: HTTP request timeout in seconds
            token: Optional bearer token sent with every request
            headers: Extra default headers, merged over DEFAULT_HEADERS
            client: Pre-built AsyncClient (e.g. with a MockTransport in tests)
        """
        self.timeout = timeout
        self.token = token
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = dict(self.headers)
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        url: str,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
        **options: Any,
    ) -> dict[str, Any]:
        """
        Perform a request and decode the JSON body.

        Args:
            method: HTTP method
            url: Full URL including query string
            json: Optional body, JSON-encoded
            headers: Extra headers for this request only
            **options: Passed through to httpx (e.g. timeout)

        Returns:
            Decoded JSON, or {} for 204 No Content

        Raises:
            TransportError: On network failure or non-2xx status
        """
        client = await self._get_client()
        logger.debug(f"{method} {url}")

        try:
            response = await client.request(
                method,
                url,
                json=json,
                headers=self._headers(headers),
                **options,
            )
        except httpx.RequestError as e:
            raise TransportError(url=url, status_code=0, message=str(e))

        if not response.is_success:
            raise TransportError(
                url=url,
                status_code=response.status_code,
                message=response.reason_phrase or response.text,
                response=response,
            )

        if response.status_code == 204:
            return {}

        return response.json()

    async def get(self, url: str, **options: Any) -> dict[str, Any]:
        return await self.request("GET", url, **options)

    async def post(self, url: str, json: Any = None, **options: Any) -> dict[str, Any]:
        return await self.request("POST", url, json=json, **options)

    async def put(self, url: str, json: Any = None, **options: Any) -> dict[str, Any]:
        return await self.request("PUT", url, json=json, **options)

    async def destroy(self, url: str, **options: Any) -> dict[str, Any]:
        return await self.request("DELETE", url, **options)
