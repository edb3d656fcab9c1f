"""Exception hierarchy for the Discord REST client.

Every failed exchange surfaces as one ``DiscordError`` subclass.  Callers branch
on the class (or on ``exc.kind``) instead of inspecting HTTP status codes.
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    CLIENT_ERROR = "client_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    CANCELLED = "cancelled"
    INVALID_IDENTIFIER = "invalid_identifier"
    CONFIGURATION = "configuration"


class DiscordError(Exception):
    """Base exception for all client errors."""

    kind: ErrorKind = ErrorKind.CLIENT_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: int | None = None,
        errors: Any = None,
        retry_after: float | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code
        self.errors = errors
        self.retry_after = retry_after
        super().__init__(self._render())

    def _render(self) -> str:
        parts = []
        if self.status_code is not None:
            parts.append(f"HTTP {self.status_code}")
        if self.code:
            parts.append(f"code {self.code}")
        text = f"{', '.join(parts)}: {self.message}" if parts else self.message
        if self.errors:
            text = f"{text} - {self.errors}"
        return text


class DiscordAPIError(DiscordError):
    """Raised on 4xx responses without a more specific class."""


class NotFoundError(DiscordAPIError):
    """Raised on 404 responses."""

    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(DiscordAPIError):
    """Raised on 401 responses."""

    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(DiscordAPIError):
    """Raised on 403 responses."""

    kind = ErrorKind.FORBIDDEN


class ValidationError(DiscordAPIError):
    """Raised on 400 or 422 responses; ``errors`` holds the field-level detail."""

    kind = ErrorKind.VALIDATION


class RateLimitExhaustedError(DiscordError):
    """Raised when waiting out a rate limit would exceed the configured ceiling."""

    kind = ErrorKind.RATE_LIMITED


class ServerError(DiscordError):
    """Raised on 5xx responses once retries are exhausted."""

    kind = ErrorKind.SERVER_ERROR


class NetworkError(DiscordError):
    """Raised when the transport keeps failing after all retries."""

    kind = ErrorKind.NETWORK_ERROR


class OperationCancelledError(DiscordError):
    """Raised when an operation's deadline passes before it could finish.

    Cancelling the calling task propagates ``asyncio.CancelledError`` as usual.
    """

    kind = ErrorKind.CANCELLED


class InvalidIdentifierError(DiscordError, ValueError):
    """Raised before any request when an identifier is not a valid snowflake."""

    kind = ErrorKind.INVALID_IDENTIFIER


class ConfigurationError(DiscordError):
    """Raised when the client is constructed without usable settings."""

    kind = ErrorKind.CONFIGURATION


# Maps HTTP status codes to exception classes.
_STATUS_MAP: dict[int, type[DiscordAPIError]] = {
    400: ValidationError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    422: ValidationError,
}


def error_for_status(status_code: int, body: Any, fallback_text: str = "") -> DiscordError:
    """Construct the appropriate exception for *status_code*.

    *body* is the decoded JSON error payload (``{"code", "message", "errors"}``)
    or ``None`` when the server did not send JSON.
    """
    code = None
    errors = None
    message = ""
    if isinstance(body, dict):
        raw_code = body.get("code")
        code = raw_code if isinstance(raw_code, int) else None
        message = str(body.get("message") or "")
        errors = body.get("errors")
    if not message:
        message = fallback_text.strip() or _default_message(status_code)

    if status_code >= 500:
        return ServerError(message, status_code=status_code, code=code, errors=errors)
    exc_cls = _STATUS_MAP.get(status_code, DiscordAPIError)
    if issubclass(exc_cls, ValidationError) and not isinstance(body, dict):
        # Only a structured error body describes a validation failure.
        exc_cls = DiscordAPIError
    return exc_cls(message, status_code=status_code, code=code, errors=errors)


def _default_message(status_code: int) -> str:
    if status_code == 404:
        return "resource not found"
    if status_code >= 500:
        return "discord server error"
    return f"request failed with HTTP {status_code}"


def is_not_found(exc: BaseException | None) -> bool:
    """Return True if *exc* (or anything in its cause chain) is a 404."""
    while exc is not None:
        if isinstance(exc, NotFoundError):
            return True
        exc = exc.__cause__
    return False
