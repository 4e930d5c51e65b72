# tests/unit/libs/lookup-common/test_retry.py
from unittest.mock import AsyncMock

import httpx
import pytest

from lookup_common.exceptions import AppError, ErrorKind
from lookup_common.retry import with_retry

pytestmark = pytest.mark.asyncio


def _connect_error() -> httpx.ConnectError:
    return httpx.ConnectError("connection refused", request=httpx.Request("GET", "http://erp.test"))


async def test_returns_first_success_without_sleeping(no_sleep):
    operation = AsyncMock(return_value="ok")

    result = await with_retry(operation, attempts=3, delay_ms=500, failure_message="Failed", sleep=no_sleep)

    assert result == "ok"
    operation.assert_awaited_once()
    no_sleep.assert_not_awaited()


async def test_recovers_after_transient_failures(no_sleep):
    operation = AsyncMock(side_effect=[_connect_error(), _connect_error(), "ok"])

    result = await with_retry(operation, attempts=3, delay_ms=250, failure_message="Failed", sleep=no_sleep)

    assert result == "ok"
    assert operation.await_count == 3
    assert no_sleep.await_count == 2
    no_sleep.assert_awaited_with(0.25)


async def test_exhaustion_raises_failure_message_with_cause(no_sleep):
    operation = AsyncMock(side_effect=RuntimeError("still down"))

    with pytest.raises(AppError) as exc_info:
        await with_retry(
            operation, attempts=3, delay_ms=10, failure_message="Failed to fetch SKU lookup", sleep=no_sleep
        )

    assert operation.await_count == 3
    assert exc_info.value.message == "Failed to fetch SKU lookup"
    assert exc_info.value.details == {"cause": "still down", "attempts": 3}
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_exhaustion_keeps_kind_of_last_failure(no_sleep):
    operation = AsyncMock(side_effect=_connect_error())

    with pytest.raises(AppError) as exc_info:
        await with_retry(operation, attempts=2, delay_ms=0, failure_message="Failed", sleep=no_sleep)

    assert exc_info.value.kind == ErrorKind.NETWORK


@pytest.mark.parametrize("attempts", [0, -1])
async def test_non_positive_attempts_never_call_operation(attempts, no_sleep):
    operation = AsyncMock(return_value="ok")

    with pytest.raises(AppError) as exc_info:
        await with_retry(operation, attempts=attempts, delay_ms=0, failure_message="Failed", sleep=no_sleep)

    operation.assert_not_awaited()
    assert exc_info.value.message == "Failed"


async def test_rejected_exceptions_propagate_unchanged(no_sleep):
    original = ValueError("not retryable")
    operation = AsyncMock(side_effect=original)

    with pytest.raises(ValueError) as exc_info:
        await with_retry(
            operation,
            attempts=5,
            delay_ms=0,
            failure_message="Failed",
            retry_if=lambda exc: not isinstance(exc, ValueError),
            sleep=no_sleep,
        )

    assert exc_info.value is original
    operation.assert_awaited_once()
