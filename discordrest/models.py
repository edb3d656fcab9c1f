"""Lightweight models for rate-limit metadata."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


def _to_float(raw: Any) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _to_int(raw: Any) -> int | None:
    value = _to_float(raw)
    return int(value) if value is not None else None


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate-limit metadata parsed from ``X-RateLimit-*`` response headers."""

    limit: int | None
    remaining: int | None
    reset_after: float | None
    bucket: str | None = None
    is_global: bool = False
    scope: str | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> RateLimitInfo | None:
        """Parse the headers, returning *None* if none are present."""
        raw_limit = headers.get("x-ratelimit-limit")
        raw_remaining = headers.get("x-ratelimit-remaining")
        raw_reset_after = headers.get("x-ratelimit-reset-after")
        raw_global = headers.get("x-ratelimit-global")
        if raw_limit is None and raw_remaining is None and raw_reset_after is None and raw_global is None:
            return None
        remaining = _to_int(raw_remaining)
        return cls(
            limit=_to_int(raw_limit),
            remaining=max(remaining, 0) if remaining is not None else None,
            reset_after=_to_float(raw_reset_after),
            bucket=headers.get("x-ratelimit-bucket"),
            is_global=(raw_global or "").lower() == "true",
            scope=headers.get("x-ratelimit-scope"),
        )


@dataclass(frozen=True)
class RateLimitedResponse:
    """Body of a 429 response."""

    retry_after: float | None
    is_global: bool = False
    message: str = ""
    code: int | None = None

    @classmethod
    def parse(cls, body: Any, headers: Mapping[str, str]) -> RateLimitedResponse:
        """Prefer the body's fractional ``retry_after`` over the ``Retry-After`` header."""
        data = body if isinstance(body, dict) else {}
        retry_after = _to_float(data.get("retry_after"))
        if retry_after is None:
            retry_after = _to_float(headers.get("retry-after"))
        is_global = bool(data.get("global")) or (
            (headers.get("x-ratelimit-global") or "").lower() == "true"
        )
        code = data.get("code")
        return cls(
            retry_after=max(retry_after, 0.0) if retry_after is not None else None,
            is_global=is_global,
            message=str(data.get("message") or ""),
            code=code if isinstance(code, int) else None,
        )
