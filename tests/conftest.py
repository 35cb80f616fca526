from typing import Callable, List

import httpx
import pytest

from maps_client import BackoffPolicy, HttpxTransport, MapsClient


@pytest.fixture
def fast_backoff() -> BackoffPolicy:
    # No sleeping between attempts, bounded by attempt count only
    return BackoffPolicy(
        initial_interval=0.0,
        jitter_fraction=0.0,
        max_attempts=5,
        max_elapsed_time=None,
    )


class RecordingHandler:
    """Mock transport handler that records requests and replays canned responses"""

    def __init__(self, responder: Callable[[httpx.Request, int], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request, len(self.requests))

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def make_client(fast_backoff):
    def factory(responder, **kwargs):
        handler = RecordingHandler(responder)
        transport = HttpxTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        kwargs.setdefault("backoff", fast_backoff)
        kwargs.setdefault("legacy_page_token_delay", 0.0)
        client = MapsClient("test-key", transport=transport, **kwargs)
        return client, handler

    return factory
