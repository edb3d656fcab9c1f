"""Thread-safe in-memory dispatch metrics collector."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field


@dataclass
class MetricsCollector:
    """Counts exchanges, retries and rate-limit waits for one client.

    Thread-safe via a single ``threading.Lock``.  The latency list is
    bounded at ``_MAX_LATENCY_SAMPLES``; when exceeded it is halved by
    keeping only the most-recent entries.
    """

    _MAX_LATENCY_SAMPLES: int = field(default=10_000, repr=False)

    # Counters
    total_requests: int = field(default=0, init=False)
    status_codes: dict[int, int] = field(default_factory=dict, init=False)
    retries: int = field(default=0, init=False)
    network_failures: int = field(default=0, init=False)
    rate_limited: int = field(default=0, init=False)
    rate_limit_waits: int = field(default=0, init=False)
    rate_limit_wait_seconds: float = field(default=0.0, init=False)
    failures: dict[str, int] = field(default_factory=dict, init=False)

    # Latency samples (milliseconds)
    _latencies: list[float] = field(default_factory=list, init=False, repr=False)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _start_time: float = field(default_factory=time.monotonic, init=False, repr=False)

    # -- Counter helpers ---------------------------------------------------

    def inc_request(self, status_code: int) -> None:
        with self._lock:
            self.total_requests += 1
            self.status_codes[status_code] = self.status_codes.get(status_code, 0) + 1
            if status_code == 429:
                self.rate_limited += 1

    def inc_network_failure(self) -> None:
        with self._lock:
            self.total_requests += 1
            self.network_failures += 1

    def inc_retry(self) -> None:
        with self._lock:
            self.retries += 1

    def record_rate_limit_wait(self, seconds: float) -> None:
        with self._lock:
            self.rate_limit_waits += 1
            self.rate_limit_wait_seconds += seconds

    def inc_failure(self, kind: str) -> None:
        with self._lock:
            self.failures[kind] = self.failures.get(kind, 0) + 1

    # -- Latency -----------------------------------------------------------

    def record_latency(self, ms: float) -> None:
        with self._lock:
            self._latencies.append(ms)
            if len(self._latencies) > self._MAX_LATENCY_SAMPLES:
                # Keep only the most-recent half
                half = self._MAX_LATENCY_SAMPLES // 2
                self._latencies = self._latencies[-half:]

    def get_latency_percentiles(self) -> dict[str, float]:
        with self._lock:
            return self._percentiles_unlocked()

    def _percentiles_unlocked(self) -> dict[str, float]:
        """Compute p50/p90/p99; caller must hold ``_lock``."""
        if not self._latencies:
            return {"p50": 0.0, "p90": 0.0, "p99": 0.0}
        s = sorted(self._latencies)
        n = len(s)
        return {
            "p50": round(s[int(n * 0.50)], 2),
            "p90": round(s[int(min(n * 0.90, n - 1))], 2),
            "p99": round(s[int(min(n * 0.99, n - 1))], 2),
        }

    # -- Snapshot / reset --------------------------------------------------

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "uptime_seconds": round(time.monotonic() - self._start_time, 2),
                "total_requests": self.total_requests,
                "status_codes": dict(self.status_codes),
                "retries": self.retries,
                "network_failures": self.network_failures,
                "rate_limit": {
                    "responses_429": self.rate_limited,
                    "waits": self.rate_limit_waits,
                    "wait_seconds": round(self.rate_limit_wait_seconds, 3),
                },
                "failures": dict(self.failures),
                "latency_ms": self._percentiles_unlocked(),
            }

    def reset(self) -> None:
        with self._lock:
            self.total_requests = 0
            self.status_codes.clear()
            self.retries = 0
            self.network_failures = 0
            self.rate_limited = 0
            self.rate_limit_waits = 0
            self.rate_limit_wait_seconds = 0.0
            self.failures.clear()
            self._latencies.clear()
            self._start_time = time.monotonic()
