"""Async client for the Materials Project REST API.

One client owns one pooled ``httpx.AsyncClient``. Every call carries the API
key header, is bounded by the configured timeout and is attempted exactly once:
failures are mapped onto the gateway error taxonomy and raised.

Example:
    async with MpRestClient(api_key="your_key") as client:
        page = await client.fetch("materials/summary/", [("_limit", "6")])
        print(page.total_doc, len(page.data))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx

from ..errors import (
    ConfigurationError,
    DecodeError,
    TransportError,
    UpstreamError,
)
from ..settings import GatewaySettings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"


@dataclass
class UpstreamPage:
    """Decoded upstream response.

    Attributes:
        data: Documents returned for this call
        total_doc: Upstream total, falling back to len(data)
        message: Optional upstream notice from meta
    """

    data: list[Any] = field(default_factory=list)
    total_doc: int = 0
    message: str | None = None


class MpRestClient:
    """Native async client for the Materials Project REST API.

    Attributes:
        settings: GatewaySettings used for base URL, timeout and key

    Example:
        async with MpRestClient() as client:
            page = await client.fetch("materials/thermo/", [("material_ids", "mp-149")])
    """

    def __init__(
        self,
        api_key: str | None = None,
        settings: GatewaySettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            api_key: MP API key (falls back to settings.mp_api_key)
            settings: Optional GatewaySettings instance
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.settings = settings or GatewaySettings.get_instance()
        self._api_key = api_key or self.settings.mp_api_key
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> MpRestClient:
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=httpx.Timeout(self.settings.request_timeout_seconds),
            headers={
                "Accept": "application/json",
                "User-Agent": self.settings.user_agent,
            },
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Safe to call repeatedly."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "MpRestClient must be used as async context manager: "
                "async with MpRestClient() as client: ..."
            )
        return self._client

    def require_api_key(self) -> str:
        """Return the API key.

        Raises:
            ConfigurationError: If no key is configured
        """
        if not self._api_key:
            raise ConfigurationError()
        return self._api_key

    async def fetch(
        self,
        endpoint: str,
        params: Sequence[tuple[str, str]],
    ) -> UpstreamPage:
        """Issue one GET against an endpoint path.

        Args:
            endpoint: Path relative to the API root (e.g. 'materials/summary/')
            params: Compiled query parameters

        Returns:
            UpstreamPage with the decoded documents

        Raises:
            ConfigurationError: If no API key is configured
            TransportError: On connection failures and timeouts
            UpstreamError: On non-success status codes
            DecodeError: If the body is not the expected JSON envelope
        """
        api_key = self.require_api_key()
        logger.debug("GET %s params=%s", endpoint, params)

        try:
            response = await self.client.get(
                endpoint,
                params=list(params),
                headers={API_KEY_HEADER: api_key},
            )
        except httpx.TimeoutException as e:
            logger.warning("Timeout requesting %s: %s", endpoint, e)
            raise TransportError(endpoint, original_error=e) from e
        except httpx.RequestError as e:
            logger.warning("Request error on %s: %s", endpoint, e)
            raise TransportError(endpoint, original_error=e) from e

        if not response.is_success:
            detail = response.text.strip()
            logger.warning(
                "Materials Project API returned %s for %s", response.status_code, endpoint
            )
            raise UpstreamError(
                response.status_code,
                detail or response.reason_phrase or None,
                source=endpoint,
            )

        return self._decode(response, endpoint)

    def _decode(self, response: httpx.Response, endpoint: str) -> UpstreamPage:
        """Decode the {data, meta} envelope."""
        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(endpoint, original_error=e) from e

        if not isinstance(payload, dict):
            raise DecodeError(endpoint)

        data = payload.get("data")
        if data is None:
            data = []
        if not isinstance(data, list):
            raise DecodeError(endpoint)

        meta = payload.get("meta")
        meta = meta if isinstance(meta, dict) else {}

        total = meta.get("total_doc")
        if not isinstance(total, int) or isinstance(total, bool):
            total = len(data)

        message = meta.get("message")
        return UpstreamPage(
            data=data,
            total_doc=total,
            message=message if isinstance(message, str) and message else None,
        )
