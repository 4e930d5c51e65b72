# src/libs/lookup-common/lookup_common/error_handling.py
import asyncio
import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from .exceptions import AppError, ErrorKind, ErrorSeverity, NormalizedError, DEFAULT_MESSAGE
from .logging_utils import correlation_id_var
from .monitoring import observe_error_handled

logger = logging.getLogger(__name__)

_MISSING = object()


def kind_for_status(status: int) -> ErrorKind:
    """Maps an HTTP status code onto the error taxonomy."""
    if status in (400, 422):
        return ErrorKind.VALIDATION
    if status == 401:
        return ErrorKind.AUTHENTICATION
    if status == 403:
        return ErrorKind.AUTHORIZATION
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status in (408, 504):
        return ErrorKind.TIMEOUT
    if status == 429:
        return ErrorKind.RATE_LIMIT
    if status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def _dig(value: Any, *path: str) -> Any:
    """Walks a path of keys or attributes, returning None as soon as a step is missing."""
    current = value
    for key in path:
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        else:
            current = getattr(current, key, None)
    return current


def _current_correlation_id() -> Optional[str]:
    correlation_id = correlation_id_var.get()
    return None if correlation_id == "<not-set>" else correlation_id


def _as_status(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _from_payload(message: str, status: Optional[int], details: Optional[Dict[str, Any]] = None) -> NormalizedError:
    status = status if status is not None else 500
    return NormalizedError.of(
        kind_for_status(status),
        message,
        status=status,
        details=details,
        correlation_id=_current_correlation_id(),
    )


def _from_http_status_error(raw: httpx.HTTPStatusError) -> NormalizedError:
    response = raw.response
    status = response.status_code
    try:
        payload = response.json()
    except ValueError:
        payload = None
    message = payload.get("message") if isinstance(payload, Mapping) else None
    if not isinstance(message, str) or not message:
        message = f"Request failed with status {status}"
    return _from_payload(message, status, details={"url": str(raw.request.url), "method": raw.request.method})


def _normalize(raw: Any) -> NormalizedError:
    # (a) already normalized
    if isinstance(raw, NormalizedError):
        return raw
    if isinstance(raw, AppError):
        return raw.error

    # (b) transport errors exposing a response envelope
    if isinstance(raw, httpx.HTTPStatusError):
        return _from_http_status_error(raw)

    nested_message = _dig(raw, "response", "data", "message")
    if isinstance(nested_message, str) and nested_message:
        status = _as_status(_dig(raw, "response", "status"))
        return _from_payload(nested_message, status)

    if isinstance(raw, Mapping) and isinstance(raw.get("message"), str) and raw.get("message"):
        return _from_payload(raw["message"], _as_status(raw.get("status")))

    # Transport failures before any response envelope was obtained
    if isinstance(raw, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return NormalizedError.of(
            ErrorKind.TIMEOUT,
            details={"reason": str(raw) or type(raw).__name__},
            correlation_id=_current_correlation_id(),
        )
    if isinstance(raw, (httpx.TransportError, ConnectionError)):
        return NormalizedError.of(
            ErrorKind.NETWORK,
            details={"reason": str(raw) or type(raw).__name__},
            correlation_id=_current_correlation_id(),
        )

    if isinstance(raw, ValidationError):
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in raw.errors()
        ]
        return NormalizedError.of(
            ErrorKind.VALIDATION,
            details={"errors": problems},
            correlation_id=_current_correlation_id(),
        )

    # (c) generic exceptions with a message
    if isinstance(raw, BaseException):
        message = getattr(raw, "message", _MISSING)
        if not isinstance(message, str) or not message:
            message = str(raw)
        return NormalizedError.of(
            ErrorKind.UNKNOWN,
            message or None,
            details={"name": type(raw).__name__},
            correlation_id=_current_correlation_id(),
        )

    # (d) any other thrown value
    if raw is None:
        return NormalizedError.of(ErrorKind.UNKNOWN, correlation_id=_current_correlation_id())
    text = raw if isinstance(raw, str) else str(raw)
    return NormalizedError.of(ErrorKind.UNKNOWN, text or None, correlation_id=_current_correlation_id())


def normalize_error(raw: Any) -> NormalizedError:
    """
    Converts any raised or rejected value into a NormalizedError.

    Resolution order: already-normalized errors pass through, then transport
    errors with a nested message payload, then exceptions carrying a message,
    then anything else (stringified, or the generic unknown message).

    Never raises.
    """
    logger.debug("Normalizing raised value.", extra={"raw_type": type(raw).__name__})
    try:
        return _normalize(raw)
    except Exception:
        logger.warning("Error normalization failed; falling back to unknown error.", exc_info=True)
        return NormalizedError.of(ErrorKind.UNKNOWN)


def handle_error(
    error: Any,
    log_callback: Optional[Callable[[NormalizedError], None]] = None,
) -> NormalizedError:
    """
    Central logging/reporting path for failures that reach a terminal handler.

    The error is normalized, logged with its classification and counted. An
    optional callback (e.g. an external reporter) receives the normalized error;
    anything the callback raises is logged and dropped. This function never raises.
    """
    normalized = normalize_error(error)
    try:
        logger.error(
            f"[{normalized.kind.value}] severity={normalized.severity.value} "
            f"status={normalized.status}: {normalized.message}",
            extra={"error_details": get_error_log(normalized.details)},
        )
        observe_error_handled(normalized.kind.value)
    except Exception:
        logger.warning("Failed to record handled error.", exc_info=True)

    if log_callback is not None:
        try:
            log_callback(normalized)
        except Exception:
            logger.error("Error report callback raised; ignoring.", exc_info=True)
    return normalized


def map_error_message(error: Any) -> str:
    """Maps any raised value to a safe, human-readable message for display."""
    message = normalize_error(error).message
    return message or DEFAULT_MESSAGE[ErrorKind.UNKNOWN]


def categorize_error(error: Any) -> str:
    """
    Categorizes an error into a coarse UI severity level.

    Returns:
        One of 'critical', 'warning' or 'info'.
    """
    normalized = normalize_error(error)
    if normalized.severity == ErrorSeverity.CRITICAL:
        return "critical"
    if normalized.severity == ErrorSeverity.HIGH:
        return "warning"
    return "info"


def get_error_log(details: Union[str, Dict[str, Any], None]) -> Optional[str]:
    """Converts error details into a string for logging or display."""
    if not details:
        return None
    if isinstance(details, str):
        return details
    return json.dumps(details, default=str, sort_keys=True)
