"""Maps Web Services Client
Async request execution with rate limiting, retries and continuation
"""

__version__ = "0.1.0"

from .api_client import MapsClient
from .classifier import ClassifiedError, classify
from .endpoints import (
    AutocompleteRequest,
    Circle,
    Endpoint,
    GeocodingRequest,
    LatLng,
    NearbySearchRequest,
    PlaceDetailsRequest,
    Rectangle,
    TextSearchRequest,
)
from .exceptions import (
    DecodingError,
    HttpStatusError,
    LegacyServiceError,
    MapsClientError,
    NoNextPageError,
    RpcServiceError,
    ServiceError,
    TransportError,
    UsageError,
    ValidationError,
)
from .logging_config import setup_logging
from .models import Api, Classification, LegacyStatus, Response, RpcCode, RpcStatus
from .pagination import ResponseWithContext, generate_session_token
from .rate_limiter import RateLimiter
from .retry import BackoffPolicy, RetryExecutor, retry_with_backoff
from .transport import HttpxTransport, WireRequest

__all__ = [
    "__version__",
    "MapsClient",
    "ClassifiedError",
    "classify",
    "AutocompleteRequest",
    "Circle",
    "Endpoint",
    "GeocodingRequest",
    "LatLng",
    "NearbySearchRequest",
    "PlaceDetailsRequest",
    "Rectangle",
    "TextSearchRequest",
    "DecodingError",
    "HttpStatusError",
    "LegacyServiceError",
    "MapsClientError",
    "NoNextPageError",
    "RpcServiceError",
    "ServiceError",
    "TransportError",
    "UsageError",
    "ValidationError",
    "setup_logging",
    "Api",
    "Classification",
    "LegacyStatus",
    "Response",
    "RpcCode",
    "RpcStatus",
    "ResponseWithContext",
    "generate_session_token",
    "RateLimiter",
    "BackoffPolicy",
    "RetryExecutor",
    "retry_with_backoff",
    "HttpxTransport",
    "WireRequest",
]
