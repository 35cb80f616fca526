import httpx
import pytest

from maps_client.classifier import (
    TRANSIENT_CODES,
    classify,
    classify_code,
    classify_http_status,
    classify_status,
)
from maps_client.exceptions import (
    DecodingError,
    HttpStatusError,
    LegacyServiceError,
    NoNextPageError,
    RpcServiceError,
    TransportError,
    ValidationError,
)
from maps_client.models import Classification, LegacyStatus, RpcCode, RpcStatus

PERMANENT_LEGACY = [s for s in LegacyStatus if s not in (LegacyStatus.OK, LegacyStatus.UNKNOWN_ERROR)]
TRANSIENT_RPC = [
    RpcCode.UNAVAILABLE,
    RpcCode.RESOURCE_EXHAUSTED,
    RpcCode.ABORTED,
    RpcCode.DEADLINE_EXCEEDED,
    RpcCode.CANCELLED,
    RpcCode.UNKNOWN,
]
PERMANENT_RPC = [c for c in RpcCode if c not in TRANSIENT_RPC]


@pytest.mark.parametrize("status", PERMANENT_LEGACY)
def test_legacy_statuses_are_permanent(status):
    assert classify_status(status) is Classification.PERMANENT
    assert classify(LegacyServiceError(status)).is_permanent


def test_legacy_unknown_error_is_transient():
    assert classify_status(LegacyStatus.UNKNOWN_ERROR) is Classification.TRANSIENT
    assert classify(LegacyServiceError(LegacyStatus.UNKNOWN_ERROR, "try again")).is_transient


@pytest.mark.parametrize("code", TRANSIENT_RPC)
def test_rpc_transient_codes(code):
    assert classify_code(code) is Classification.TRANSIENT
    assert classify(RpcServiceError(RpcStatus(code=code))).is_transient


@pytest.mark.parametrize("code", PERMANENT_RPC)
def test_rpc_permanent_codes(code):
    assert classify_code(code) is Classification.PERMANENT
    assert classify(RpcServiceError(RpcStatus(code=code))).is_permanent


def test_rpc_code_partition_sizes():
    assert len(TRANSIENT_CODES) == 6
    assert len(PERMANENT_RPC) == 11


@pytest.mark.parametrize("status_code", [500, 502, 503, 504, 429])
def test_http_retryable_statuses(status_code):
    assert classify_http_status(status_code) is Classification.TRANSIENT
    assert classify(HttpStatusError(status_code)).is_transient


@pytest.mark.parametrize("status_code", [400, 401, 403, 404, 409, 418])
def test_http_other_statuses_are_permanent(status_code):
    assert classify_http_status(status_code) is Classification.PERMANENT
    assert classify(HttpStatusError(status_code)).is_permanent


def test_http_status_wins_over_attached_rpc_detail():
    # 409 maps to ABORTED (transient), but non-2xx is classified by HTTP status
    error = HttpStatusError(409, detail=RpcStatus(code=RpcCode.ABORTED))
    assert classify(error).is_permanent


def test_transport_and_usage_errors():
    assert classify(TransportError("connection refused")).is_transient
    assert classify(DecodingError("bad json")).is_permanent
    assert classify(NoNextPageError()).is_permanent
    assert classify(ValidationError("both fields set")).is_permanent


def test_raw_httpx_errors():
    request = httpx.Request("GET", "https://example.com")
    assert classify(httpx.ConnectError("boom", request=request)).is_transient
    assert classify(httpx.ReadTimeout("slow", request=request)).is_transient
    response = httpx.Response(503, request=request)
    assert classify(httpx.HTTPStatusError("503", request=request, response=response)).is_transient


def test_unrecognised_errors_are_permanent():
    assert classify(ValueError("bug")).is_permanent


def test_classified_error_keeps_original_reference():
    error = TransportError("reset")
    classified = classify(error)
    assert classified.cause is error
    assert classified.is_transient != classified.is_permanent


def test_rpc_status_prefers_status_name_over_http_code():
    status = RpcStatus.from_payload(
        {"code": 400, "message": "bad token", "status": "INVALID_ARGUMENT"}
    )
    assert status.code is RpcCode.INVALID_ARGUMENT
    assert str(status) == "INVALID_ARGUMENT: bad token"


def test_rpc_status_maps_http_code_when_status_missing():
    assert RpcStatus.from_payload({"code": 503}).code is RpcCode.UNAVAILABLE
    assert RpcStatus.from_payload({"code": 429}).code is RpcCode.RESOURCE_EXHAUSTED
    assert RpcStatus.from_payload({"code": 418}).code is RpcCode.UNKNOWN
    assert RpcStatus.from_payload({"code": 14}).code is RpcCode.UNAVAILABLE


def test_rpc_status_retry_delay():
    status = RpcStatus.from_payload(
        {
            "code": 429,
            "status": "RESOURCE_EXHAUSTED",
            "details": [
                {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "30s"},
            ],
        }
    )
    assert status.retry_delay == "30s"
    assert RpcStatus(code=RpcCode.INTERNAL).retry_delay is None
