"""Data models and enums for the maps client"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional


class Api(Enum):
    """Rate-limit scopes. ALL applies to every call in addition to its own API."""

    ALL = "all"
    DIRECTIONS = "directions"
    DISTANCE_MATRIX = "distance_matrix"
    ELEVATION = "elevation"
    GEOCODING = "geocoding"
    TIME_ZONE = "time_zone"
    PLACES = "places"
    PLACES_NEW = "places_new"
    AUTOCOMPLETE = "autocomplete"
    TEXT_SEARCH = "text_search"
    PLACE_DETAILS = "place_details"
    ROADS = "roads"
    ADDRESS_VALIDATION = "address_validation"


class Classification(Enum):
    """Error categories for retry handling"""

    TRANSIENT = "transient"  # Retry unchanged
    PERMANENT = "permanent"  # Don't retry


class ErrorModel(Enum):
    """Which generation of the upstream error model an endpoint speaks"""

    LEGACY = "legacy"  # "status" string in a 200 body
    RPC = "rpc"  # google.rpc.Status object with a canonical code


class LegacyStatus(Enum):
    """Status strings returned by the legacy web services"""

    OK = "OK"
    ZERO_RESULTS = "ZERO_RESULTS"
    NOT_FOUND = "NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"
    OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"
    OVER_DAILY_LIMIT = "OVER_DAILY_LIMIT"
    REQUEST_DENIED = "REQUEST_DENIED"
    MAX_WAYPOINTS_EXCEEDED = "MAX_WAYPOINTS_EXCEEDED"
    MAX_ROUTE_LENGTH_EXCEEDED = "MAX_ROUTE_LENGTH_EXCEEDED"
    MAX_ELEMENTS_EXCEEDED = "MAX_ELEMENTS_EXCEEDED"
    DATA_NOT_AVAILABLE = "DATA_NOT_AVAILABLE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class RpcCode(IntEnum):
    """Canonical gRPC status codes (google.rpc.Code)"""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    @classmethod
    def from_http_status(cls, status_code: int) -> "RpcCode":
        """Map the HTTP code Google puts in ``error.code`` back to a canonical code"""
        return _HTTP_TO_RPC.get(status_code, cls.UNKNOWN)

    @classmethod
    def from_name(cls, name: str) -> Optional["RpcCode"]:
        try:
            return cls[name]
        except KeyError:
            return None


_HTTP_TO_RPC = {
    200: RpcCode.OK,
    499: RpcCode.CANCELLED,
    400: RpcCode.INVALID_ARGUMENT,
    504: RpcCode.DEADLINE_EXCEEDED,
    404: RpcCode.NOT_FOUND,
    403: RpcCode.PERMISSION_DENIED,
    429: RpcCode.RESOURCE_EXHAUSTED,
    409: RpcCode.ABORTED,
    501: RpcCode.UNIMPLEMENTED,
    500: RpcCode.INTERNAL,
    503: RpcCode.UNAVAILABLE,
    401: RpcCode.UNAUTHENTICATED,
}

RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"


@dataclass(frozen=True)
class RpcStatus:
    """A google.rpc.Status error payload"""

    code: RpcCode
    message: str = ""
    status: str = ""
    details: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RpcStatus":
        """
        Build from the ``error`` object of an error body.

        The ``status`` name wins over the numeric ``code``, which Google fills
        with an HTTP status rather than a canonical code.
        """
        status = payload.get("status") or ""
        code = RpcCode.from_name(status) if status else None
        if code is None:
            raw_code = payload.get("code")
            if isinstance(raw_code, int) and raw_code > 16:
                code = RpcCode.from_http_status(raw_code)
            elif isinstance(raw_code, int) and raw_code >= 0:
                code = RpcCode(raw_code)
            else:
                code = RpcCode.UNKNOWN
        return cls(
            code=code,
            message=payload.get("message") or "",
            status=status or code.name,
            details=list(payload.get("details") or []),
        )

    @property
    def retry_delay(self) -> Optional[str]:
        for detail in self.details:
            if detail.get("@type") == RETRY_INFO_TYPE:
                return detail.get("retryDelay")
        return None

    def __str__(self) -> str:
        return f"{self.status}: {self.message}" if self.message else self.status


@dataclass
class Response:
    """A decoded response: its items, the raw payload and any continuation token"""

    items: List[Dict[str, Any]] = field(default_factory=list)
    next_page_token: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def has_next_page(self) -> bool:
        return bool(self.next_page_token)

    def __len__(self) -> int:
        return len(self.items)
