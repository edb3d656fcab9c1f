"""Dispatcher tests: retries, rate-limit waits, error classification and deadlines."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import FakeClock, GatedClock
from discordrest import (
    DiscordAPIError,
    ForbiddenError,
    InvalidIdentifierError,
    NetworkError,
    NotFoundError,
    OperationCancelledError,
    RateLimitExhaustedError,
    RetryPolicy,
    ServerError,
    UnauthorizedError,
    ValidationError,
    is_not_found,
)
from discordrest.dispatcher import render_path
from discordrest.schemas import CreateRoleParams, ModifyChannelParams

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_CHANNEL_BODY = {"id": "123456789012345678", "type": 0, "name": "general"}


def _ok(body: dict | list | None = None, headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(200, json=body if body is not None else _CHANNEL_BODY, headers=headers)


def _rate_limited(retry_after: float, *, is_global: bool = False) -> httpx.Response:
    return httpx.Response(
        429,
        json={
            "message": "You are being rate limited.",
            "retry_after": retry_after,
            "global": is_global,
        },
        headers={"retry-after": str(int(retry_after) + 1)},
    )


class _Sequence:
    """Handler that replays canned responses and records request times."""

    def __init__(self, clock: FakeClock, *responses):
        self._clock = clock
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.times: list[float] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.times.append(self._clock.now())
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        # Fresh copy so a canned response can be served more than once.
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)


class _WindowedServer:
    """Fake API enforcing ``limit`` requests per ``window`` seconds on one bucket."""

    def __init__(self, clock: FakeClock, limit: int = 5, window: float = 10.0):
        self.clock = clock
        self.limit = limit
        self.window = window
        self.reset_at: float | None = None
        self.count = 0
        self.per_window: list[int] = []
        self.rejected = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        now = self.clock.now()
        if self.reset_at is None or now >= self.reset_at:
            self.reset_at = now + self.window
            self.count = 0
            self.per_window.append(0)
        self.count += 1
        self.per_window[-1] += 1
        reset_after = self.reset_at - now
        # Let other tasks run while this response is "on the wire".
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        if self.count > self.limit:
            self.rejected += 1
            return _rate_limited(reset_after)
        channel_id = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(
            200,
            json={"id": channel_id, "type": 0},
            headers={
                "x-ratelimit-limit": str(self.limit),
                "x-ratelimit-remaining": str(self.limit - self.count),
                "x-ratelimit-reset-after": f"{reset_after:.3f}",
                "x-ratelimit-bucket": "abcd1234",
            },
        )


# ---------------------------------------------------------------------------
# Success and request shape
# ---------------------------------------------------------------------------


class TestRequestShape:
    async def test_headers_and_path(self, make_client, clock):
        handler = _Sequence(clock, _ok())
        client = make_client(handler)
        await client.get_channel("123456789012345678")
        request = handler.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/channels/123456789012345678"
        assert request.headers["authorization"] == "Bot test-token"
        assert request.headers["user-agent"].startswith("DiscordBot (discordrest, ")
        assert "content-type" not in request.headers

    async def test_json_body_and_audit_reason(self, make_client, clock):
        handler = _Sequence(clock, _ok({"id": "1", "name": "mods"}))
        client = make_client(handler)
        await client.create_guild_role(1, CreateRoleParams(name="mods"), reason="set up mods")
        request = handler.requests[0]
        assert request.headers["content-type"] == "application/json"
        assert request.headers["x-audit-log-reason"] == "set%20up%20mods"
        assert json.loads(request.content) == {"name": "mods"}

    async def test_no_content_returns_none(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(204))
        client = make_client(handler)
        assert await client.delete_channel(42) is None

    async def test_invalid_identifier_is_rejected_before_sending(self, make_client, clock):
        handler = _Sequence(clock, _ok())
        client = make_client(handler)
        with pytest.raises(InvalidIdentifierError):
            await client.get_channel("not-a-snowflake")
        with pytest.raises(InvalidIdentifierError):
            await client.get_channel("")
        assert handler.requests == []

    async def test_non_json_success_body(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(200, text="<html>oops</html>"))
        client = make_client(handler)
        with pytest.raises(ServerError):
            await client.get_channel(1)
        assert len(handler.requests) == 1


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class TestClassification:
    async def test_404_is_not_retried(self, make_client, clock):
        handler = _Sequence(
            clock, httpx.Response(404, json={"code": 10003, "message": "Unknown Channel"})
        )
        client = make_client(handler)
        with pytest.raises(NotFoundError) as exc_info:
            await client.get_channel(1)
        assert len(handler.requests) == 1
        assert exc_info.value.code == 10003
        assert exc_info.value.status_code == 404
        assert is_not_found(exc_info.value)

    async def test_404_without_json_body(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(404))
        client = make_client(handler)
        with pytest.raises(NotFoundError) as exc_info:
            await client.get_channel(1)
        assert exc_info.value.message == "resource not found"

    async def test_401(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(401, json={"code": 0, "message": "401: Unauthorized"}))
        client = make_client(handler)
        with pytest.raises(UnauthorizedError):
            await client.get_current_user()
        assert len(handler.requests) == 1

    async def test_403(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(403, json={"code": 50013, "message": "Missing Permissions"}))
        client = make_client(handler)
        with pytest.raises(ForbiddenError) as exc_info:
            await client.delete_guild_role(1, 2)
        assert exc_info.value.code == 50013
        assert len(handler.requests) == 1

    async def test_validation_detail_is_verbatim(self, make_client, clock):
        errors = {"name": {"_errors": [{"code": "BASE_TYPE_REQUIRED", "message": "This field is required"}]}}
        handler = _Sequence(
            clock,
            httpx.Response(400, json={"code": 50035, "message": "Invalid Form Body", "errors": errors}),
        )
        client = make_client(handler)
        with pytest.raises(ValidationError) as exc_info:
            await client.modify_channel(1, ModifyChannelParams(name=""))
        exc = exc_info.value
        assert exc.code == 50035
        assert exc.message == "Invalid Form Body"
        assert exc.errors == errors
        assert len(handler.requests) == 1

    async def test_other_4xx(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(409, json={"code": 0, "message": "conflict"}))
        client = make_client(handler)
        with pytest.raises(DiscordAPIError) as exc_info:
            await client.get_channel(1)
        assert type(exc_info.value) is DiscordAPIError
        assert exc_info.value.status_code == 409


# ---------------------------------------------------------------------------
# Retries
# ---------------------------------------------------------------------------


class TestRetries:
    async def test_server_error_then_success(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(500), _ok())
        client = make_client(handler)
        channel = await client.get_channel(123456789012345678)
        assert channel.name == "general"
        assert len(handler.requests) == 2
        assert clock.sleeps == [1.0]

    async def test_server_error_exhausts_retries(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(502))
        client = make_client(handler, policy=RetryPolicy(max_retries=3, jitter=0.0))
        with pytest.raises(ServerError) as exc_info:
            await client.get_channel(1)
        assert exc_info.value.status_code == 502
        assert len(handler.requests) == 4
        assert clock.sleeps == [1.0, 2.0, 4.0]
        assert client.metrics.retries == 3

    async def test_backoff_is_capped(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter=0.0)
        assert [policy.backoff(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    async def test_backoff_jitter_bounds(self):
        policy = RetryPolicy(base_delay=1.0, jitter=0.5)
        for _ in range(50):
            assert 2.0 <= policy.backoff(2) <= 2.5

    async def test_network_error_then_success(self, make_client, clock):
        handler = _Sequence(clock, httpx.ConnectError("connection refused"), _ok())
        client = make_client(handler)
        channel = await client.get_channel(1)
        assert channel.type == 0
        assert len(handler.requests) == 2

    async def test_network_error_exhausts_retries(self, make_client, clock):
        handler = _Sequence(clock, httpx.ReadTimeout("timed out"))
        client = make_client(handler, policy=RetryPolicy(max_retries=2, jitter=0.0))
        with pytest.raises(NetworkError) as exc_info:
            await client.get_channel(1)
        assert len(handler.requests) == 3
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
        assert client.metrics.network_failures == 3

    async def test_network_failure_frees_the_route(self, make_client, clock):
        handler = _Sequence(clock, httpx.ConnectError("down"))
        client = make_client(handler, policy=RetryPolicy(max_retries=0, jitter=0.0))
        with pytest.raises(NetworkError):
            await client.get_channel(1)
        assert client.buckets.reserve("GET /channels/{id}") == (True, 0.0)


# ---------------------------------------------------------------------------
# Rate limits
# ---------------------------------------------------------------------------


class TestRateLimits:
    async def test_429_waits_retry_after_then_replays(self, make_client, clock):
        handler = _Sequence(clock, _rate_limited(2.5), _ok())
        client = make_client(handler)
        channel = await client.get_channel(123456789012345678)
        assert channel.id == 123456789012345678
        assert len(handler.requests) == 2
        assert handler.times[1] - handler.times[0] >= 2.5
        assert handler.requests[0].content == handler.requests[1].content

    async def test_429_does_not_use_retry_budget(self, make_client, clock):
        handler = _Sequence(
            clock, _rate_limited(0.5), _rate_limited(0.5), _rate_limited(0.5), _rate_limited(0.5), _ok()
        )
        client = make_client(handler, policy=RetryPolicy(max_retries=1, jitter=0.0))
        await client.get_channel(1)
        assert len(handler.requests) == 5
        assert client.metrics.retries == 0
        assert client.metrics.rate_limited == 4

    async def test_429_retry_after_header_fallback(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(429, headers={"retry-after": "3"}), _ok())
        client = make_client(handler)
        await client.get_channel(1)
        assert handler.times[1] - handler.times[0] >= 3.0

    async def test_global_429_blocks_other_routes(self, make_client, clock):
        handler = _Sequence(clock, _rate_limited(1.5, is_global=True), _ok())
        client = make_client(handler)
        await client.get_channel(1)
        assert handler.times[1] - handler.times[0] >= 1.5
        # Global pause applied to the global bucket, not only the channel route.
        assert client.buckets.global_bucket.reset_at >= handler.times[0] + 1.5

    async def test_rate_limit_ceiling(self, make_client, clock):
        handler = _Sequence(clock, _rate_limited(5.0))
        client = make_client(handler, policy=RetryPolicy(jitter=0.0, max_rate_limit_wait=1.0))
        with pytest.raises(RateLimitExhaustedError) as exc_info:
            await client.get_channel(1)
        assert exc_info.value.retry_after == 5.0
        assert exc_info.value.status_code == 429
        assert len(handler.requests) == 1

    async def test_headers_pace_later_requests(self, make_client, clock):
        exhausted = _ok(
            headers={
                "x-ratelimit-limit": "1",
                "x-ratelimit-remaining": "0",
                "x-ratelimit-reset-after": "4.0",
            }
        )
        handler = _Sequence(clock, exhausted)
        client = make_client(handler)
        await client.get_channel(1)
        await client.get_channel(2)
        assert len(handler.requests) == 2
        assert handler.times[1] - handler.times[0] >= 4.0

    async def test_concurrent_callers_respect_the_ceiling(self, make_client, clock):
        server = _WindowedServer(clock, limit=5, window=10.0)
        client = make_client(server)
        results = await asyncio.gather(*(client.get_channel(1000 + n) for n in range(17)))
        assert sorted(int(channel.id) for channel in results) == [1000 + n for n in range(17)]
        assert server.rejected == 0
        assert sum(server.per_window) == 17
        assert all(count <= 5 for count in server.per_window)


# ---------------------------------------------------------------------------
# Cancellation and deadlines
# ---------------------------------------------------------------------------


class TestCancellation:
    async def test_cancel_during_rate_limit_wait(self, make_client):
        gated = GatedClock()
        handler = _Sequence(gated, _rate_limited(30.0), _ok())
        client = make_client(handler, use_clock=gated)

        task = asyncio.create_task(client.get_channel(1))
        await asyncio.wait_for(gated.sleeping.wait(), timeout=1.0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=1.0)
        assert len(handler.requests) == 1
        assert client.metrics.failures.get("cancelled") == 1

    async def test_cancel_while_waiting_for_exhausted_bucket(self, make_client):
        gated = GatedClock()
        exhausted = {
            "x-ratelimit-limit": "1",
            "x-ratelimit-remaining": "0",
            "x-ratelimit-reset-after": "30",
            "x-ratelimit-bucket": "chan",
        }
        handler = _Sequence(gated, _ok(headers=exhausted))
        client = make_client(handler, use_clock=gated)
        await client.get_channel(1)

        task = asyncio.create_task(client.get_channel(1))
        await asyncio.wait_for(gated.sleeping.wait(), timeout=1.0)
        assert gated.sleeps == [pytest.approx(30.0)]
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=1.0)

        assert len(handler.requests) == 1
        info = client.buckets.get("GET /channels/{id}")
        assert info.remaining == 0
        assert client.buckets._bucket("GET /channels/{id}").in_flight == 0

    async def test_deadline_shorter_than_retry_after(self, make_client, clock):
        handler = _Sequence(clock, _rate_limited(30.0), _ok())
        client = make_client(handler)
        with pytest.raises(OperationCancelledError):
            await client.get_channel(1, timeout=5.0)
        assert len(handler.requests) == 1
        assert clock.sleeps == []

    async def test_deadline_during_backoff(self, make_client, clock):
        handler = _Sequence(clock, httpx.Response(503))
        client = make_client(handler, policy=RetryPolicy(max_retries=10, base_delay=1.0, jitter=0.0))
        with pytest.raises(OperationCancelledError):
            await client.get_channel(1, timeout=4.0)
        # 1s and 2s backoffs fit in the deadline; the 4s one does not.
        assert len(handler.requests) == 3

    async def test_expired_deadline_sends_nothing(self, make_client, clock):
        handler = _Sequence(clock, _ok())
        client = make_client(handler)
        with pytest.raises(OperationCancelledError):
            await client.get_channel(1, timeout=0.0)
        assert handler.requests == []


# ---------------------------------------------------------------------------
# Path rendering
# ---------------------------------------------------------------------------


class TestRenderPath:
    def test_ids_are_canonical(self):
        assert render_path("/guilds/{guild_id}/roles/{role_id}", {"guild_id": "007", "role_id": 9}) == "/guilds/7/roles/9"

    def test_non_id_params_are_encoded(self):
        assert render_path("/invites/{code}", {"code": "a b/c"}) == "/invites/a%20b%2Fc"

    def test_missing_param(self):
        with pytest.raises(InvalidIdentifierError):
            render_path("/channels/{channel_id}", {})

    def test_out_of_range_id(self):
        with pytest.raises(InvalidIdentifierError):
            render_path("/channels/{channel_id}", {"channel_id": str(2**64)})
