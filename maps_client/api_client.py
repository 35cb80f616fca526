"""API client: rate limiting, retries and continuation for every call"""

import asyncio
import os
import time
from typing import Any, AsyncIterator, Dict, List, Optional, TypeVar

import httpx
import orjson
from loguru import logger

from .config import (
    API_KEY_ENV_VAR,
    API_KEY_HEADER,
    DEFAULT_REQUEST_TIMEOUT,
    LEGACY_PAGE_TOKEN_DELAY,
)
from .endpoints import AutocompleteRequest, Endpoint, PlaceDetailsRequest
from .exceptions import (
    DecodingError,
    HttpStatusError,
    LegacyServiceError,
    RpcServiceError,
    ValidationError,
)
from .models import Api, ErrorModel, LegacyStatus, Response, RpcStatus
from .pagination import ResponseWithContext
from .rate_limiter import RateLimiter
from .retry import DEFAULT_BACKOFF, BackoffPolicy, RetryExecutor
from .transport import HttpxTransport, Transport, WireRequest

E = TypeVar("E", bound=Endpoint)


class MapsClient:
    """
    Maps web services client with:
    - Per-API rate limiting shared by every call made through this client
    - Exponential backoff retry for transient failures
    - Both the legacy status-string and google.rpc.Status error models
    - Page-token and session-token continuation
    """

    def __init__(
        self,
        api_key: str,
        *,
        transport: Optional[Transport] = None,
        rate_limiter: Optional[RateLimiter] = None,
        backoff: BackoffPolicy = DEFAULT_BACKOFF,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        legacy_page_token_delay: float = LEGACY_PAGE_TOKEN_DELAY,
    ):
        """
        Initialize API client.

        Args:
            api_key: Google Maps Platform API key
            transport: Transport to send requests through (httpx by default)
            rate_limiter: Rate limiter instance; a fresh, unlimited one if omitted
            backoff: Retry policy template for every call
            timeout: Per-attempt timeout in seconds for the default transport
            legacy_page_token_delay: Seconds to wait before using a legacy page token
        """
        if not api_key:
            raise ValidationError("an API key is required")
        self._api_key = api_key
        self.transport = transport or HttpxTransport(timeout=timeout)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.retry_executor = RetryExecutor(backoff)
        self.legacy_page_token_delay = legacy_page_token_delay

        logger.info("Maps client initialized")

    @classmethod
    def from_env(cls, **kwargs) -> "MapsClient":
        api_key = os.environ.get(API_KEY_ENV_VAR, "")
        if not api_key:
            raise ValidationError(f"{API_KEY_ENV_VAR} is not set")
        return cls(api_key, **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self.transport.aclose()

    def with_rate(self, api: Api, requests: int, duration: float) -> "MapsClient":
        """Limit ``api`` to ``requests`` calls per ``duration`` seconds"""
        self.rate_limiter.set_rate(api, requests, duration)
        return self

    def _build(self, request: Endpoint) -> WireRequest:
        """Attach credentials to a request and turn it into a wire request"""
        params = dict(request.params())
        headers = dict(request.headers())
        if request.error_model is ErrorModel.LEGACY:
            params["key"] = self._api_key
        else:
            headers[API_KEY_HEADER] = self._api_key
        return WireRequest(
            method=request.method,
            url=request.url(),
            params=params,
            headers=headers,
            body=request.body(),
        )

    def _decode(self, request: Endpoint, response: httpx.Response) -> Response:
        """Check status, parse JSON and surface structured service errors"""
        body = response.content

        if not response.is_success:
            detail = _rpc_detail(body)
            logger.error(
                f"❌ {request.title}: HTTP {response.status_code} "
                f"{response.reason_phrase or ''}".rstrip()
            )
            raise HttpStatusError(response.status_code, body=body, detail=detail)

        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            logger.error(f"❌ {request.title}: INVALID JSON RESPONSE: {e}")
            raise DecodingError(f"invalid JSON in {request.title} response: {e}", body=body) from e
        if not isinstance(payload, dict):
            raise DecodingError(f"expected a JSON object from {request.title}", body=body)

        if request.error_model is ErrorModel.LEGACY:
            raw_status = payload.get("status")
            try:
                status = LegacyStatus(raw_status)
            except ValueError as e:
                raise DecodingError(f"unknown status {raw_status!r} from {request.title}", body=body) from e
            if status is not LegacyStatus.OK:
                logger.error(f"❌ {request.title}: API error {status.value}")
                raise LegacyServiceError(status, payload.get("error_message"))
        elif isinstance(payload.get("error"), dict):
            status = RpcStatus.from_payload(payload["error"])
            logger.error(f"❌ {request.title}: API error {status}")
            raise RpcServiceError(status)

        try:
            return request.decode(payload)
        except (KeyError, TypeError, AttributeError) as e:
            raise DecodingError(f"unexpected {request.title} response shape: {e}", body=body) from e

    async def execute(self, request: Endpoint) -> Response:
        """
        Validate, rate limit, send with retries and decode one request.

        Raises the last observed failure if the call does not succeed.
        """
        request.validate()
        wire = self._build(request)
        logger.info(f"{request.method} {wire.url} ({request.title})")

        await self.rate_limiter.admit(request.scopes())

        async def attempt() -> Response:
            start_time = time.monotonic()
            response = await self.transport.send(wire)
            logger.debug(
                f"   ← Response {response.status_code} ({time.monotonic() - start_time:.2f}s)"
            )
            return self._decode(request, response)

        return await self.retry_executor.execute(attempt)

    async def execute_with_context(self, request: E) -> ResponseWithContext[E]:
        response = await self.execute(request)
        return ResponseWithContext(response=response, request=request)

    async def continue_pagination(self, previous: ResponseWithContext[E]) -> ResponseWithContext[E]:
        """Fetch the page after ``previous`` by re-issuing its request with the new token"""
        next_request = previous.next_page_request()
        if next_request.error_model is ErrorModel.LEGACY and self.legacy_page_token_delay > 0:
            logger.debug(f"Waiting {self.legacy_page_token_delay:g}s for page token to activate")
            await asyncio.sleep(self.legacy_page_token_delay)
        return await self.execute_with_context(next_request)

    async def continue_session(
        self,
        previous: ResponseWithContext[AutocompleteRequest],
        new_input: str,
    ) -> ResponseWithContext[AutocompleteRequest]:
        """Re-issue the previous autocomplete request with only its input changed"""
        return await self.execute_with_context(previous.continue_with(new_input))

    async def close_session(
        self,
        previous: ResponseWithContext[AutocompleteRequest],
        place_id: str,
        field_mask: tuple = ("*",),
    ) -> Response:
        """Fetch details for the chosen place, ending the autocomplete session"""
        request = PlaceDetailsRequest(
            place_id=place_id,
            field_mask=field_mask,
            session_token=previous.session_token,
            language=previous.request.language,
            region=previous.request.region,
        )
        return await self.execute(request)

    async def iter_pages(self, initial: ResponseWithContext[E]) -> AsyncIterator[ResponseWithContext[E]]:
        """Yield ``initial`` and every page after it, in order"""
        current = initial
        yield current
        while current.has_next():
            current = await self.continue_pagination(current)
            yield current

    async def collect_all_pages(self, initial: ResponseWithContext[E]) -> List[Dict[str, Any]]:
        """
        Concatenate the items of every page in response order.

        The first failure aborts the whole call; partial results are not returned.
        """
        items: List[Dict[str, Any]] = []
        pages = 0
        async for page in self.iter_pages(initial):
            items.extend(page.items)
            pages += 1
        logger.info(f"Collected {len(items)} items from {pages} pages")
        return items


def _rpc_detail(body: bytes) -> Optional[RpcStatus]:
    """Parse a google.rpc.Status error body if there is one"""
    try:
        payload = orjson.loads(body) if body else None
    except orjson.JSONDecodeError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return RpcStatus.from_payload(payload["error"])
    return None
