# src/libs/lookup-common/lookup_common/exceptions.py
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class ErrorKind(str, Enum):
    """Closed taxonomy of failures surfaced by the lookup layer."""
    GLOBAL = "GlobalError"
    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFoundError"
    UNKNOWN = "UnknownError"
    NETWORK = "NetworkError"
    AUTHENTICATION = "AuthenticationError"
    AUTHORIZATION = "AuthorizationError"
    RATE_LIMIT = "RateLimitError"
    TIMEOUT = "TimeoutError"
    SERVER = "ServerError"


class ErrorSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


DEFAULT_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.GLOBAL: 500,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNKNOWN: 500,
    ErrorKind.NETWORK: 503,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.SERVER: 500,
}

DEFAULT_SEVERITY: Dict[ErrorKind, ErrorSeverity] = {
    ErrorKind.GLOBAL: ErrorSeverity.CRITICAL,
    ErrorKind.VALIDATION: ErrorSeverity.LOW,
    ErrorKind.NOT_FOUND: ErrorSeverity.LOW,
    ErrorKind.UNKNOWN: ErrorSeverity.CRITICAL,
    ErrorKind.NETWORK: ErrorSeverity.HIGH,
    ErrorKind.AUTHENTICATION: ErrorSeverity.MEDIUM,
    ErrorKind.AUTHORIZATION: ErrorSeverity.MEDIUM,
    ErrorKind.RATE_LIMIT: ErrorSeverity.MEDIUM,
    ErrorKind.TIMEOUT: ErrorSeverity.HIGH,
    ErrorKind.SERVER: ErrorSeverity.CRITICAL,
}

DEFAULT_MESSAGE: Dict[ErrorKind, str] = {
    ErrorKind.GLOBAL: "Something went wrong while displaying this page.",
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again or contact support.",
    ErrorKind.NETWORK: "Network error occurred",
    ErrorKind.AUTHENTICATION: "Authentication required",
    ErrorKind.AUTHORIZATION: "Access denied",
    ErrorKind.RATE_LIMIT: "Too many requests",
    ErrorKind.TIMEOUT: "Request timed out",
    ErrorKind.SERVER: "Internal server error",
}

_RECOVERY_HINTS: Dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Please check your internet connection and try again.",
    ErrorKind.TIMEOUT: "The request took too long. Please retry.",
    ErrorKind.VALIDATION: "Please review the input and try again.",
    ErrorKind.AUTHENTICATION: "Please sign in and try again.",
}


class NormalizedError(BaseModel):
    """
    Uniform, taxonomy-tagged representation of any failure, independent of
    the shape it was originally raised or rejected with.
    """
    model_config = ConfigDict(frozen=True)

    message: str
    status: int
    kind: ErrorKind
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    details: Optional[Dict[str, Any]] = None
    correlation_id: Optional[str] = None

    @field_validator("details", mode="before")
    @classmethod
    def _wrap_text_details(cls, value):
        if isinstance(value, str):
            return {"description": value}
        return value

    @classmethod
    def of(
        cls,
        kind: ErrorKind,
        message: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> "NormalizedError":
        """Builds an error of the given kind, filling status, severity and message defaults."""
        return cls(
            message=message or DEFAULT_MESSAGE[kind],
            status=status if status is not None else DEFAULT_STATUS[kind],
            kind=kind,
            severity=DEFAULT_SEVERITY[kind],
            details=details,
            correlation_id=correlation_id,
        )

    def recovery_hint(self) -> Optional[str]:
        """UI-safe hint for how the user may recover, if one applies to this kind."""
        return _RECOVERY_HINTS.get(self.kind)


class AppError(Exception):
    """
    Exception carrying a NormalizedError. Raise this where a failure has
    already been classified; everything else is classified by normalize_error.
    """
    def __init__(self, error: NormalizedError):
        self.error = error
        self.message = error.message
        super().__init__(self.message)

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def status(self) -> int:
        return self.error.status

    @property
    def details(self) -> Optional[Dict[str, Any]]:
        return self.error.details

    @classmethod
    def validation(cls, message: str = DEFAULT_MESSAGE[ErrorKind.VALIDATION], details=None) -> "AppError":
        return cls(NormalizedError.of(ErrorKind.VALIDATION, message, details=details))

    @classmethod
    def not_found(cls, message: str = DEFAULT_MESSAGE[ErrorKind.NOT_FOUND]) -> "AppError":
        return cls(NormalizedError.of(ErrorKind.NOT_FOUND, message))

    @classmethod
    def network(cls, details=None) -> "AppError":
        return cls(NormalizedError.of(ErrorKind.NETWORK, details=details))

    @classmethod
    def timeout(cls, details=None) -> "AppError":
        return cls(NormalizedError.of(ErrorKind.TIMEOUT, details=details))

    @classmethod
    def unknown(cls, message: str = DEFAULT_MESSAGE[ErrorKind.UNKNOWN], details=None) -> "AppError":
        return cls(NormalizedError.of(ErrorKind.UNKNOWN, message, details=details))
