"""HTTP transport: the only place network I/O happens"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import httpx
from loguru import logger

from .config import DEFAULT_REQUEST_TIMEOUT
from .exceptions import TransportError


@dataclass(frozen=True)
class WireRequest:
    """A fully built HTTP request, ready to send"""

    method: str
    url: str
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


class Transport(Protocol):
    async def send(self, request: WireRequest) -> httpx.Response: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """
    Transport backed by an httpx.AsyncClient.

    httpx errors (connect, read, per-attempt timeout) are wrapped in
    TransportError. Non-2xx responses are returned, not raised.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize transport.

        Args:
            client: Existing client to use; one is created (and owned) if omitted
            timeout: Per-attempt timeout in seconds for an owned client
        """
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, request: WireRequest) -> httpx.Response:
        try:
            return await self.client.request(
                request.method,
                request.url,
                params=request.params or None,
                headers=request.headers,
                content=request.body,
            )
        except httpx.TimeoutException as e:
            logger.error(f"REQUEST TIMEOUT: {request.method} {request.url}")
            raise TransportError(f"Request timed out: {e}", cause=e) from e
        except httpx.TransportError as e:
            logger.error(f"TRANSPORT ERROR: {request.method} {request.url}: {e}")
            raise TransportError(f"Transport failure: {e}", cause=e) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
