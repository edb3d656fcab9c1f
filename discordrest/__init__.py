"""discordrest: rate-limit aware async client for the Discord REST API."""

from __future__ import annotations

__version__ = "0.1.0"

from discordrest.client import AsyncDiscordClient  # noqa: E402
from discordrest.dispatcher import Dispatcher, RetryPolicy  # noqa: E402
from discordrest.errors import (  # noqa: E402
    ConfigurationError,
    DiscordAPIError,
    DiscordError,
    ErrorKind,
    ForbiddenError,
    InvalidIdentifierError,
    NetworkError,
    NotFoundError,
    OperationCancelledError,
    RateLimitExhaustedError,
    ServerError,
    UnauthorizedError,
    ValidationError,
    is_not_found,
)
from discordrest.logging_config import setup_logging  # noqa: E402
from discordrest.models import RateLimitInfo  # noqa: E402
from discordrest.ratelimit import BucketTable, MonotonicClock, route_key  # noqa: E402
from discordrest.snowflake import Snowflake  # noqa: E402

__all__ = [
    "__version__",
    "AsyncDiscordClient",
    "Dispatcher",
    "RetryPolicy",
    "BucketTable",
    "MonotonicClock",
    "route_key",
    "RateLimitInfo",
    "Snowflake",
    "DiscordError",
    "DiscordAPIError",
    "ErrorKind",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ValidationError",
    "RateLimitExhaustedError",
    "ServerError",
    "NetworkError",
    "OperationCancelledError",
    "InvalidIdentifierError",
    "ConfigurationError",
    "is_not_found",
    "setup_logging",
]
