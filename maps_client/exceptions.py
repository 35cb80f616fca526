"""Custom exception classes for the maps client"""

from typing import Optional

from .models import LegacyStatus, RpcStatus


class MapsClientError(Exception):
    """Base exception for client errors"""

    pass


class TransportError(MapsClientError):
    """Raised when the request never produced an HTTP response (connect, I/O, timeout)"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class HttpStatusError(MapsClientError):
    """Raised when the server answers with a non-2xx status"""

    def __init__(
        self,
        status_code: int,
        body: bytes = b"",
        detail: Optional[RpcStatus] = None,
    ):
        self.status_code = status_code
        self.body = body
        self.detail = detail
        message = f"HTTP {status_code} error"
        if detail is not None:
            message = f"{message}: {detail}"
        super().__init__(message)


class ServiceError(MapsClientError):
    """Raised when a successful HTTP response carries a structured service error"""

    pass


class LegacyServiceError(ServiceError):
    """Raised when a legacy endpoint returns a non-OK status string"""

    def __init__(self, status: LegacyStatus, error_message: Optional[str] = None):
        self.status = status
        self.error_message = error_message
        message = status.value
        if error_message:
            message = f"{message}: {error_message}"
        super().__init__(message)


class RpcServiceError(ServiceError):
    """Raised when a response body carries a google.rpc.Status error"""

    def __init__(self, status: RpcStatus):
        self.status = status
        super().__init__(str(status))

    @property
    def code(self):
        return self.status.code


class DecodingError(MapsClientError):
    """Raised when a response body cannot be decoded"""

    def __init__(self, message: str, body: bytes = b""):
        self.body = body
        super().__init__(message)


class UsageError(MapsClientError):
    """Raised on caller misuse. Never retried."""

    pass


class ValidationError(UsageError):
    """Raised when a request fails validation before it is sent"""

    pass


class NoNextPageError(UsageError):
    """Raised when continuing a response that was the last page"""

    def __init__(
        self,
        message: str = "no next page available - the previous response was the last page of results",
    ):
        super().__init__(message)
