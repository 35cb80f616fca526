"""Classify failures as transient (retry) or permanent (give up)"""

from dataclasses import dataclass

import httpx

from .exceptions import (
    DecodingError,
    HttpStatusError,
    LegacyServiceError,
    RpcServiceError,
    TransportError,
    UsageError,
)
from .models import Classification, LegacyStatus, RpcCode

TRANSIENT_CODES = frozenset(
    {
        RpcCode.UNAVAILABLE,
        RpcCode.RESOURCE_EXHAUSTED,
        RpcCode.ABORTED,
        RpcCode.DEADLINE_EXCEEDED,
        RpcCode.CANCELLED,
        RpcCode.UNKNOWN,
    }
)


@dataclass(frozen=True)
class ClassifiedError:
    """
    A classification attached to an error.

    Holds a reference to the original error; it is not a new error type.
    """

    classification: Classification
    cause: BaseException

    @property
    def is_transient(self) -> bool:
        return self.classification is Classification.TRANSIENT

    @property
    def is_permanent(self) -> bool:
        return self.classification is Classification.PERMANENT


def classify_status(status: LegacyStatus) -> Classification:
    """Legacy status strings: only UNKNOWN_ERROR is worth retrying"""
    if status is LegacyStatus.UNKNOWN_ERROR:
        return Classification.TRANSIENT
    return Classification.PERMANENT


def classify_code(code: RpcCode) -> Classification:
    if code in TRANSIENT_CODES:
        return Classification.TRANSIENT
    return Classification.PERMANENT


def classify_http_status(status_code: int) -> Classification:
    # Only 5xx and 429 are eligible for retries
    if status_code >= 500 or status_code == 429:
        return Classification.TRANSIENT
    return Classification.PERMANENT


def _classification_of(error: BaseException) -> Classification:
    if isinstance(error, UsageError):
        return Classification.PERMANENT
    elif isinstance(error, TransportError):
        return Classification.TRANSIENT
    elif isinstance(error, HttpStatusError):
        return classify_http_status(error.status_code)
    elif isinstance(error, LegacyServiceError):
        return classify_status(error.status)
    elif isinstance(error, RpcServiceError):
        return classify_code(error.code)
    elif isinstance(error, DecodingError):
        return Classification.PERMANENT
    elif isinstance(error, httpx.HTTPStatusError):
        return classify_http_status(error.response.status_code)
    elif isinstance(error, httpx.TransportError):
        return Classification.TRANSIENT
    else:
        return Classification.PERMANENT


def classify(error: BaseException) -> ClassifiedError:
    """Classify error for retry handling. Pure: no I/O, no mutation."""
    return ClassifiedError(_classification_of(error), error)
