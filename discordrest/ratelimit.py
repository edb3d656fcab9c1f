"""Per-route and global rate-limit bookkeeping.

The table is shared by every operation running on one client.  ``reserve``
is the only way to obtain permission to send, and it decrements the quota at
the moment permission is granted so concurrent callers cannot both spend the
last request of a window.
"""

from __future__ import annotations

import asyncio
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Mapping, Protocol

from discordrest.models import RateLimitInfo

# Callers that must wait for an in-flight response (the first request to an
# unknown route, or the last requests of a window) poll at this interval.
POLL_INTERVAL = 0.05

# A server reset this much later than ours means the server opened a new window.
WINDOW_TOLERANCE = 0.5

_PLACEHOLDER_RE = re.compile(r"\{[^/{}]*\}")
_NUMERIC_RE = re.compile(r"[0-9]+")


class Clock(Protocol):
    def now(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class MonotonicClock:
    """Wall-independent clock backed by ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


def route_key(method: str, path_template: str) -> str:
    """Return the bucket key for *method* and *path_template*.

    Placeholders and literal ids both collapse to ``{id}``, so
    ``/guilds/{guild_id}/roles`` and ``/guilds/1234/roles`` share one bucket.
    """
    path = path_template.split("?", 1)[0].strip("/")
    segments = []
    for segment in path.split("/") if path else []:
        if _PLACEHOLDER_RE.fullmatch(segment) or _NUMERIC_RE.fullmatch(segment):
            segments.append("{id}")
        else:
            segments.append(segment)
    return f"{method.upper()} /{'/'.join(segments)}"


@dataclass
class Bucket:
    """Quota state for one route family.  Callers must hold ``lock``.

    ``in_flight`` counts granted requests whose response has not been
    observed yet; a route bucket only refills once it drops to zero, so a
    late response from a closed window can never hand out extra quota.
    """

    key: str
    limit: int | None = None
    remaining: int | None = None
    reset_at: float | None = None
    window: float | None = None
    bucket_id: str | None = None
    in_flight: int = 0
    unlimited: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def _refresh(self, now: float) -> None:
        if self.reset_at is None or now < self.reset_at:
            return
        if self.window is None and self.in_flight:
            return
        self.remaining = self.limit
        self.reset_at = None

    def wait_time(self, now: float) -> float:
        self._refresh(now)
        if self.remaining is None:
            if self.unlimited or not self.in_flight:
                return 0.0
            return POLL_INTERVAL
        if self.remaining > 0:
            return 0.0
        if self.reset_at is not None and self.reset_at > now:
            return self.reset_at - now
        # Exhausted, and the response carrying the next reset time is still due.
        return POLL_INTERVAL

    def consume(self, now: float) -> None:
        if self.window is None:
            self.in_flight += 1
        elif self.reset_at is None:
            self.reset_at = now + self.window
        if self.remaining is not None and self.remaining > 0:
            self.remaining -= 1

    def settle(self) -> None:
        """Mark one granted request as answered (or abandoned)."""
        self.in_flight = max(self.in_flight - 1, 0)

    def apply(self, now: float, info: RateLimitInfo) -> None:
        """Merge server headers into local state."""
        if info.limit is not None:
            self.limit = info.limit
        if info.bucket:
            self.bucket_id = info.bucket
        server_reset = now + info.reset_after if info.reset_after is not None else None
        # The server has not counted requests that are still in flight.
        server_remaining = (
            max(info.remaining - self.in_flight, 0) if info.remaining is not None else None
        )
        live_window = self.reset_at is not None and now < self.reset_at

        if server_reset is not None and live_window and server_reset > self.reset_at + WINDOW_TOLERANCE:
            # The server has moved on to a later window.
            self.remaining = server_remaining
            self.reset_at = server_reset
        else:
            if server_remaining is not None:
                if self.remaining is None:
                    self.remaining = server_remaining
                else:
                    self.remaining = min(self.remaining, server_remaining)
            if server_reset is not None:
                self.reset_at = max(self.reset_at, server_reset) if live_window else server_reset

        if self.remaining == 0 and self.reset_at is None:
            # No reset time to pace by: fall back to one request at a time.
            self.remaining = None

    def snapshot(self, now: float) -> RateLimitInfo:
        return RateLimitInfo(
            limit=self.limit,
            remaining=max(self.remaining, 0) if self.remaining is not None else None,
            reset_after=max(self.reset_at - now, 0.0) if self.reset_at is not None else None,
            bucket=self.bucket_id,
        )


class BucketTable:
    """Thread-safe table of route buckets plus the global bucket.

    Each bucket has its own lock; the registry lock only guards lazy
    creation.  ``reserve`` takes the route lock and then the global lock,
    always in that order.  Buckets live as long as the table.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        global_limit: int | None = 50,
        global_window: float = 1.0,
    ) -> None:
        self._clock = clock or MonotonicClock()
        self._buckets: dict[str, Bucket] = {}
        self._registry_lock = threading.Lock()
        self._global = Bucket(
            key="global",
            limit=global_limit or None,
            remaining=global_limit or None,
            window=global_window,
            unlimited=not global_limit,
        )

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def global_bucket(self) -> Bucket:
        return self._global

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._buckets)

    def _bucket(self, key: str) -> Bucket:
        bucket = self._buckets.get(key)
        if bucket is not None:
            return bucket
        with self._registry_lock:
            return self._buckets.setdefault(key, Bucket(key=key))

    def reserve(self, key: str) -> tuple[bool, float]:
        """Try to take one request's worth of quota for *key*.

        Returns ``(granted, wait_seconds)``.  Nothing is consumed unless both
        the route bucket and the global bucket have room.
        """
        bucket = self._bucket(key)
        now = self._clock.now()
        with bucket.lock, self._global.lock:
            wait = max(bucket.wait_time(now), self._global.wait_time(now))
            if wait > 0:
                return False, wait
            bucket.consume(now)
            self._global.consume(now)
            return True, 0.0

    def observe(
        self,
        key: str,
        headers: Mapping[str, str],
        status_code: int,
        *,
        retry_after: float | None = None,
        is_global: bool = False,
    ) -> RateLimitInfo | None:
        """Update *key* from the response to a granted request.

        The server is authoritative on 429: the bucket (or the global bucket)
        is emptied until ``retry_after`` has passed, whatever we believed.
        """
        info = RateLimitInfo.from_headers(headers)
        now = self._clock.now()
        bucket = self._bucket(key)

        with bucket.lock:
            bucket.settle()
            if status_code == 429 and not is_global:
                wait = retry_after
                if wait is None and info is not None:
                    wait = info.reset_after
                if info is not None and info.limit is not None:
                    bucket.limit = info.limit
                bucket.remaining = 0
                bucket.reset_at = now + (wait or 0.0)
                bucket.unlimited = False
            elif info is None or (info.remaining is None and info.reset_after is None):
                if bucket.limit is None:
                    bucket.unlimited = True
            else:
                bucket.unlimited = False
                bucket.apply(now, info)

        if status_code == 429 and is_global:
            with self._global.lock:
                self._global.remaining = 0
                self._global.reset_at = now + (retry_after or 0.0)
        return info

    def release(self, key: str) -> None:
        """Return the in-flight slot of a request that got no response."""
        bucket = self._bucket(key)
        with bucket.lock:
            bucket.settle()

    def get(self, key: str) -> RateLimitInfo | None:
        bucket = self._buckets.get(key)
        if bucket is None:
            return None
        with bucket.lock:
            return bucket.snapshot(self._clock.now())

    def clear(self) -> None:
        """Remove all tracked state (useful in tests)."""
        with self._registry_lock:
            self._buckets.clear()
        with self._global.lock:
            self._global.remaining = self._global.limit
            self._global.reset_at = None
