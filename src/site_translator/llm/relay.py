# SPDX-License-Identifier: Apache-2.0
"""HTTP relay for provider requests, with optional outbound proxy."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from site_translator.providers.base import TransportError

if TYPE_CHECKING:
    import aiohttp

logger = logging.getLogger(__name__)


@dataclass
class RelayResponse:
    """Status and raw body of a relayed request."""

    status: int
    text: str
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True for 2xx responses."""
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return json.loads(self.text)


class HttpRelay:
    """Thin aiohttp wrapper that forwards provider requests.

    Every request carries its own total timeout. A proxy URL, when given,
    is passed straight to aiohttp.
    """

    DEFAULT_TIMEOUT = 300.0

    def __init__(self) -> None:
        """Initialize HttpRelay.

        Raises:
            ImportError: If aiohttp is not installed.
        """
        try:
            import aiohttp as _aiohttp

            self._aiohttp = _aiohttp
        except ImportError:
            raise ImportError(
                "aiohttp is required for the HTTP relay. "
                "Install with: pip install site-translator"
            ) from None

        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpRelay:
        """Enter async context manager."""
        await self._ensure_session()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager."""
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists.

        Returns:
            Active aiohttp session.
        """
        if self._session is None:
            self._session = self._aiohttp.ClientSession()
        return self._session

    async def post(
        self,
        endpoint: str,
        headers: dict[str, str],
        body: str,
        proxy_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> RelayResponse:
        """POST a serialized body to an endpoint.

        Raises:
            TransportError: On network failure or timeout.
        """
        return await self._request("POST", endpoint, headers, body, proxy_url, timeout)

    async def get(
        self,
        endpoint: str,
        headers: dict[str, str] | None = None,
        proxy_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> RelayResponse:
        """GET an endpoint.

        Raises:
            TransportError: On network failure or timeout.
        """
        return await self._request("GET", endpoint, headers or {}, None, proxy_url, timeout)

    async def _request(
        self,
        method: str,
        endpoint: str,
        headers: dict[str, str],
        body: str | None,
        proxy_url: str | None,
        timeout: float,
    ) -> RelayResponse:
        session = await self._ensure_session()
        logger.debug(
            "%s %s%s", method, endpoint, " (via proxy)" if proxy_url else ""
        )
        try:
            async with session.request(
                method,
                endpoint,
                headers=headers,
                data=body.encode("utf-8") if body is not None else None,
                proxy=proxy_url or None,
                timeout=self._aiohttp.ClientTimeout(total=timeout),
            ) as response:
                text = await response.text()
                logger.debug("Response status: %d", response.status)
                return RelayResponse(
                    status=response.status,
                    text=text,
                    headers=dict(response.headers),
                )
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request timeout after {timeout:g}s") from e
        except self._aiohttp.ClientError as e:
            raise TransportError(f"Request to {endpoint} failed: {e}") from e

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
