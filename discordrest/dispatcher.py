"""Request dispatcher: paces, sends, retries and classifies one logical operation.

Each call to :meth:`Dispatcher.request` runs a small state machine::

    SEND ──429──────────────> WAIT_RATE_LIMIT ──> SEND
      │ ──5xx / transport──> WAIT_BACKOFF ─────> SEND
      │ ──2xx──────────────> DECODE ──> DONE
      └ ──other 4xx────────> FAILED

Rate-limit waits are not counted against ``RetryPolicy.max_retries``; only
server errors and transport failures are.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import random
import re
import time
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from discordrest.errors import (
    DiscordError,
    ErrorKind,
    InvalidIdentifierError,
    NetworkError,
    OperationCancelledError,
    RateLimitExhaustedError,
    ServerError,
    error_for_status,
)
from discordrest.models import RateLimitedResponse
from discordrest.ratelimit import BucketTable, route_key
from discordrest.services.metrics import MetricsCollector
from discordrest.services.request_context import (
    generate_operation_id,
    get_operation_id,
    operation_id_var,
)
from discordrest.snowflake import Snowflake

logger = logging.getLogger(__name__)

_PARAM_RE = re.compile(r"\{([^/{}]+)\}")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff and retry limits for transient failures."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.25
    max_rate_limit_wait: float | None = None

    @classmethod
    def from_settings(cls, settings: Any) -> RetryPolicy:
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.backoff_base,
            max_delay=settings.backoff_max,
            jitter=settings.backoff_jitter,
            max_rate_limit_wait=settings.max_rate_limit_wait,
        )

    def backoff(self, failures: int) -> float:
        """Delay before the retry that follows the *failures*-th transient failure."""
        delay = min(self.base_delay * 2 ** max(failures - 1, 0), self.max_delay)
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return delay


class State(enum.Enum):
    SEND = "send"
    WAIT_RATE_LIMIT = "wait_rate_limit"
    WAIT_BACKOFF = "wait_backoff"
    DECODE = "decode"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PendingExchange:
    """One logical call, carried across every attempt made for it."""

    method: str
    path: str
    route: str
    body: bytes | None = None
    form: dict[str, str] | None = None
    files: Mapping[str, Any] | None = None
    params: Mapping[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    deadline: float | None = None
    attempt: int = 0
    failures: int = 0
    rate_limit_waited: float = 0.0
    wait: float = 0.0
    response: httpx.Response | None = None
    error: DiscordError | None = None
    result: Any = None

    @property
    def label(self) -> str:
        return f"{self.method} {self.path}"


def render_path(template: str, path_params: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders in *template*.

    Parameters ending in ``_id`` must be valid snowflakes; anything else
    (invite codes, emoji names) is percent-encoded.
    """

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        value = path_params.get(name)
        if value is None or (isinstance(value, str) and not value):
            raise InvalidIdentifierError(f"missing path parameter {name!r} for {template}")
        if name.endswith("_id"):
            return Snowflake.format(value)
        return quote(str(value), safe="")

    return _PARAM_RE.sub(substitute, template)


def _form_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class Dispatcher:
    """Executes requests against one API origin with shared rate-limit state."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        buckets: BucketTable,
        policy: RetryPolicy | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._http = http
        self._buckets = buckets
        self._clock = buckets.clock
        self._policy = policy or RetryPolicy()
        self._metrics = metrics or MetricsCollector()

    @property
    def buckets(self) -> BucketTable:
        return self._buckets

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    async def request(
        self,
        method: str,
        template: str,
        *,
        path_params: Mapping[str, Any] | None = None,
        json_body: Any = None,
        files: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Run one operation to completion and return its decoded JSON body.

        Returns ``None`` for empty (204) responses.  *timeout* bounds the whole
        operation, waits included; when it runs out ``OperationCancelledError``
        is raised.  With *files* the request is sent as multipart form data and
        the top-level fields of *json_body* become form fields.
        """
        method = method.upper()
        headers: dict[str, str] = {}
        body = None
        form = None
        if files is not None:
            form = {
                key: _form_value(value) for key, value in (json_body or {}).items() if value is not None
            }
        elif json_body is not None:
            body = json.dumps(json_body, separators=(",", ":")).encode()
            headers["Content-Type"] = "application/json"
        if reason:
            headers["X-Audit-Log-Reason"] = quote(reason, safe="")

        exchange = PendingExchange(
            method=method,
            path=render_path(template, path_params or {}),
            route=route_key(method, template),
            body=body,
            form=form,
            files=files,
            params=params,
            headers=headers,
            deadline=self._clock.now() + timeout if timeout is not None else None,
        )

        token = None
        if not get_operation_id():
            token = operation_id_var.set(generate_operation_id())
        try:
            return await self._run(exchange)
        except OperationCancelledError as exc:
            logger.warning("%s", exc)
            self._metrics.inc_failure(exc.kind.value)
            raise
        except asyncio.CancelledError:
            logger.info("%s cancelled after %d attempt(s)", exchange.label, exchange.attempt)
            self._metrics.inc_failure("cancelled")
            raise
        finally:
            if token is not None:
                operation_id_var.reset(token)

    # -- state machine -------------------------------------------------------

    async def _run(self, exchange: PendingExchange) -> Any:
        state = State.SEND
        while True:
            if state is State.SEND:
                state = await self._send(exchange)
            elif state is State.WAIT_RATE_LIMIT:
                state = await self._wait_rate_limit(exchange)
            elif state is State.WAIT_BACKOFF:
                state = await self._wait_backoff(exchange)
            elif state is State.DECODE:
                state = self._decode(exchange)
            elif state is State.DONE:
                return exchange.result
            else:
                error = exchange.error
                assert error is not None
                self._metrics.inc_failure(error.kind.value)
                # A 404 is routine for callers checking whether something still exists.
                level = logging.DEBUG if error.kind is ErrorKind.NOT_FOUND else logging.WARNING
                logger.log(
                    level, "%s failed after %d attempt(s): %s", exchange.label, exchange.attempt, error,
                )
                raise error

    async def _send(self, exchange: PendingExchange) -> State:
        self._check_deadline(exchange)
        granted, wait = self._buckets.reserve(exchange.route)
        if not granted:
            exchange.wait = wait
            return State.WAIT_RATE_LIMIT

        exchange.attempt += 1
        started = time.perf_counter()
        try:
            if exchange.files is not None:
                payload = {"data": exchange.form, "files": exchange.files}
            else:
                payload = {"content": exchange.body}
            response = await self._http.request(
                exchange.method,
                exchange.path,
                **payload,
                params=exchange.params,
                headers=exchange.headers,
                timeout=self._request_timeout(exchange),
            )
        except httpx.TransportError as exc:
            self._buckets.release(exchange.route)
            self._metrics.inc_network_failure()
            self._check_deadline(exchange)
            error = NetworkError(f"{exchange.label} failed: {type(exc).__name__}: {exc}")
            error.__cause__ = exc
            exchange.error = error
            return self._after_transient_failure(exchange)
        except BaseException:
            self._buckets.release(exchange.route)
            raise

        self._metrics.record_latency((time.perf_counter() - started) * 1000)
        self._metrics.inc_request(response.status_code)
        exchange.response = response
        return self._classify(exchange, response)

    def _classify(self, exchange: PendingExchange, response: httpx.Response) -> State:
        status = response.status_code
        logger.debug("%s -> %d (attempt %d)", exchange.label, status, exchange.attempt)

        if status == 429:
            limited = RateLimitedResponse.parse(_json_or_none(response), response.headers)
            retry_after = limited.retry_after
            if retry_after is None:
                retry_after = self._policy.base_delay
            self._buckets.observe(
                exchange.route,
                response.headers,
                status,
                retry_after=retry_after,
                is_global=limited.is_global,
            )
            logger.warning(
                "Rate limited on %s (%s), retrying in %.2fs",
                exchange.route,
                "global" if limited.is_global else "route",
                retry_after,
            )
            exchange.wait = retry_after
            return State.WAIT_RATE_LIMIT

        self._buckets.observe(exchange.route, response.headers, status)

        if 200 <= status < 300:
            return State.DECODE
        exchange.error = error_for_status(status, _json_or_none(response), response.text)
        if status >= 500:
            return self._after_transient_failure(exchange)
        return State.FAILED

    def _after_transient_failure(self, exchange: PendingExchange) -> State:
        exchange.failures += 1
        if exchange.failures > self._policy.max_retries:
            return State.FAILED
        return State.WAIT_BACKOFF

    async def _wait_rate_limit(self, exchange: PendingExchange) -> State:
        wait = exchange.wait
        ceiling = self._policy.max_rate_limit_wait
        if ceiling is not None and exchange.rate_limit_waited + wait > ceiling:
            last = exchange.response
            exchange.error = RateLimitExhaustedError(
                f"{exchange.label} would wait {exchange.rate_limit_waited + wait:.2f}s "
                f"on rate limits, more than the {ceiling:.2f}s allowed",
                status_code=429 if last is not None and last.status_code == 429 else None,
                retry_after=wait,
            )
            return State.FAILED
        exchange.rate_limit_waited += wait
        self._metrics.record_rate_limit_wait(wait)
        await self._pause(exchange, wait)
        return State.SEND

    async def _wait_backoff(self, exchange: PendingExchange) -> State:
        delay = self._policy.backoff(exchange.failures)
        self._metrics.inc_retry()
        logger.warning(
            "%s failed (%s), retrying in %.2fs (retry %d/%d)",
            exchange.label,
            exchange.error,
            delay,
            exchange.failures,
            self._policy.max_retries,
        )
        await self._pause(exchange, delay)
        return State.SEND

    def _decode(self, exchange: PendingExchange) -> State:
        response = exchange.response
        assert response is not None
        if response.status_code == 204 or not response.content:
            exchange.result = None
            return State.DONE
        try:
            exchange.result = response.json()
        except ValueError as exc:
            error = ServerError(
                f"{exchange.label} returned a body that is not JSON",
                status_code=response.status_code,
            )
            error.__cause__ = exc
            exchange.error = error
            return State.FAILED
        return State.DONE

    # -- deadlines -----------------------------------------------------------

    def _check_deadline(self, exchange: PendingExchange) -> None:
        if exchange.deadline is not None and self._clock.now() >= exchange.deadline:
            raise OperationCancelledError(
                f"{exchange.label} deadline passed after {exchange.attempt} attempt(s)"
            )

    async def _pause(self, exchange: PendingExchange, seconds: float) -> None:
        if exchange.deadline is not None:
            left = exchange.deadline - self._clock.now()
            if seconds > left:
                raise OperationCancelledError(
                    f"{exchange.label} needs to wait {seconds:.2f}s "
                    f"but only {max(left, 0.0):.2f}s remain before its deadline"
                )
        await self._clock.sleep(seconds)

    def _request_timeout(self, exchange: PendingExchange) -> Any:
        if exchange.deadline is None:
            return httpx.USE_CLIENT_DEFAULT
        left = max(exchange.deadline - self._clock.now(), 0.001)
        client_timeout = self._http.timeout.read
        if client_timeout is not None and client_timeout < left:
            return httpx.USE_CLIENT_DEFAULT
        return left
