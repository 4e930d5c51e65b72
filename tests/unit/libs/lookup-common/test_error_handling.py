# tests/unit/libs/lookup-common/test_error_handling.py
import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from lookup_common.error_handling import (
    categorize_error,
    get_error_log,
    handle_error,
    kind_for_status,
    map_error_message,
    normalize_error,
)
from lookup_common.exceptions import AppError, ErrorKind, NormalizedError
from lookup_common.logging_utils import correlation_id_var


def _status_error(status: int, **response_kwargs) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "http://erp.test/api/v1/lookups/skus")
    response = httpx.Response(status, request=request, **response_kwargs)
    return httpx.HTTPStatusError("upstream failure", request=request, response=response)


@pytest.mark.parametrize(
    "status, expected",
    [
        (400, ErrorKind.VALIDATION),
        (422, ErrorKind.VALIDATION),
        (401, ErrorKind.AUTHENTICATION),
        (403, ErrorKind.AUTHORIZATION),
        (404, ErrorKind.NOT_FOUND),
        (408, ErrorKind.TIMEOUT),
        (429, ErrorKind.RATE_LIMIT),
        (502, ErrorKind.SERVER),
        (302, ErrorKind.UNKNOWN),
    ],
)
def test_kind_for_status(status, expected):
    assert kind_for_status(status) == expected


def test_normalized_error_passes_through():
    error = NormalizedError.of(ErrorKind.NOT_FOUND, "Customer not found")
    assert normalize_error(error) is error
    assert normalize_error(AppError(error)) is error


def test_nested_response_payload_message_is_used():
    raw = SimpleNamespace(response=SimpleNamespace(status=404, data={"message": "SKU not found"}))

    error = normalize_error(raw)

    assert error.message == "SKU not found"
    assert error.status == 404
    assert error.kind == ErrorKind.NOT_FOUND


def test_nested_payload_without_status_defaults_to_500():
    raw = {"response": {"data": {"message": "Boom"}}}

    error = normalize_error(raw)

    assert error.message == "Boom"
    assert error.status == 500
    assert error.kind == ErrorKind.SERVER


def test_http_status_error_uses_json_message():
    error = normalize_error(_status_error(403, json={"message": "Not allowed to list roles"}))

    assert error.kind == ErrorKind.AUTHORIZATION
    assert error.status == 403
    assert error.message == "Not allowed to list roles"
    assert error.details["method"] == "GET"


def test_http_status_error_without_json_body():
    error = normalize_error(_status_error(503, text="<html>down</html>"))

    assert error.kind == ErrorKind.SERVER
    assert error.message == "Request failed with status 503"


def test_envelope_mapping_with_message():
    error = normalize_error({"success": False, "message": "Invalid filter", "status": 400})

    assert error.kind == ErrorKind.VALIDATION
    assert error.message == "Invalid filter"


def test_transport_failures_are_classified():
    request = httpx.Request("GET", "http://erp.test/lookups")
    assert normalize_error(httpx.ConnectError("refused", request=request)).kind == ErrorKind.NETWORK
    assert normalize_error(httpx.ReadTimeout("slow", request=request)).kind == ErrorKind.TIMEOUT
    assert normalize_error(asyncio.TimeoutError()).kind == ErrorKind.TIMEOUT
    assert normalize_error(ConnectionResetError("reset")).kind == ErrorKind.NETWORK


def test_pydantic_validation_error():
    class Probe(BaseModel):
        limit: int

    with pytest.raises(ValidationError) as exc_info:
        Probe(limit="many")

    error = normalize_error(exc_info.value)

    assert error.kind == ErrorKind.VALIDATION
    assert error.status == 400
    assert error.details["errors"][0].startswith("limit:")


def test_plain_exception_message_is_kept():
    error = normalize_error(ValueError("bad label"))

    assert error.kind == ErrorKind.UNKNOWN
    assert error.message == "bad label"
    assert error.details == {"name": "ValueError"}


def test_non_exception_values():
    assert normalize_error("plain text").message == "plain text"
    assert normalize_error(None).message.startswith("An unexpected error occurred")
    assert normalize_error(42).message == "42"


def test_correlation_id_is_attached_when_set():
    token = correlation_id_var.set("LKP:abc")
    try:
        error = normalize_error(RuntimeError("x"))
    finally:
        correlation_id_var.reset(token)

    assert error.correlation_id == "LKP:abc"


def test_handle_error_invokes_callback_with_normalized_error():
    callback = MagicMock()

    result = handle_error(RuntimeError("render blew up"), log_callback=callback)

    callback.assert_called_once_with(result)
    assert result.message == "render blew up"


def test_handle_error_swallows_callback_failures():
    callback = MagicMock(side_effect=RuntimeError("reporter offline"))

    result = handle_error(ValueError("original"), log_callback=callback)

    assert result.message == "original"


def test_map_error_message_and_categorize():
    assert map_error_message(AppError.not_found("Gone")) == "Gone"
    assert categorize_error(AppError.unknown()) == "critical"
    assert categorize_error(AppError.network()) == "warning"
    assert categorize_error(AppError.validation()) == "info"


def test_get_error_log():
    assert get_error_log(None) is None
    assert get_error_log("text") == "text"
    assert get_error_log({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'
