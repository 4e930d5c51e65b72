# src/libs/lookup-common/lookup_common/retry.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .error_handling import normalize_error
from .exceptions import AppError, ErrorKind, NormalizedError
from .monitoring import observe_retry, observe_retry_exhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _before_sleep(operation_name: str):
    log_hook = before_sleep_log(logger, logging.WARNING)

    def hook(retry_state) -> None:
        observe_retry(operation_name)
        log_hook(retry_state)

    return hook


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    attempts: int,
    delay_ms: float,
    failure_message: str,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    operation_name: str = "operation",
) -> T:
    """
    Runs an idempotent async operation with bounded retries and a fixed delay.

    The operation is called at most `attempts` times, sleeping `delay_ms`
    between attempts. When attempts run out an AppError is raised whose message
    is `failure_message` and whose details carry the last underlying message
    under 'cause'. With `attempts <= 0` the failure is raised without calling
    the operation at all.

    Args:
        operation: Zero-argument coroutine factory to run.
        attempts: Maximum number of calls to `operation`.
        delay_ms: Fixed delay between attempts, in milliseconds.
        failure_message: Message of the error raised on exhaustion.
        retry_if: Optional predicate; exceptions it rejects propagate unchanged
            after the first attempt.
        sleep: Awaitable sleep used between attempts.
        operation_name: Label for logs and metrics.
    """
    if attempts <= 0:
        logger.error(f"Refusing to run '{operation_name}' with {attempts} attempts.")
        raise AppError(
            NormalizedError.of(ErrorKind.UNKNOWN, failure_message, details={"attempts": 0})
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(max(delay_ms, 0) / 1000),
        retry=retry_if_exception(retry_if) if retry_if else retry_if_exception_type(Exception),
        before_sleep=_before_sleep(operation_name),
        sleep=sleep,
        reraise=True,
    )

    attempt_number = 0
    try:
        async for attempt in retrying:
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                result = await operation()
        return result
    except Exception as exc:
        if retry_if is not None and not retry_if(exc):
            raise
        last_error = normalize_error(exc)
        observe_retry_exhausted(operation_name)
        logger.error(
            f"'{operation_name}' failed after {attempt_number} attempt(s): {last_error.message}"
        )
        raise AppError(
            NormalizedError.of(
                last_error.kind,
                failure_message,
                status=last_error.status,
                details={"cause": last_error.message, "attempts": attempt_number},
                correlation_id=last_error.correlation_id,
            )
        ) from exc
