"""Tests for the bucket table: route keys, quota accounting, 429 handling."""

from __future__ import annotations

import threading

import pytest

from conftest import FakeClock
from discordrest import BucketTable, route_key
from discordrest.ratelimit import POLL_INTERVAL


def _headers(limit: int, remaining: int, reset_after: float, bucket: str = "b1") -> dict[str, str]:
    return {
        "x-ratelimit-limit": str(limit),
        "x-ratelimit-remaining": str(remaining),
        "x-ratelimit-reset-after": str(reset_after),
        "x-ratelimit-bucket": bucket,
    }


@pytest.fixture
def table(clock: FakeClock) -> BucketTable:
    return BucketTable(clock=clock)


KEY = "GET /channels/{id}"


# ---------------------------------------------------------------------------
# Route keys
# ---------------------------------------------------------------------------


class TestRouteKey:
    def test_placeholders_and_ids_collapse(self):
        assert route_key("get", "/guilds/{guild_id}/roles") == "GET /guilds/{id}/roles"
        assert route_key("GET", "/guilds/1234/roles") == "GET /guilds/{id}/roles"
        assert route_key("GET", "guilds/1234/roles/") == "GET /guilds/{id}/roles"

    def test_method_is_part_of_the_key(self):
        assert route_key("GET", "/channels/{channel_id}") != route_key("DELETE", "/channels/{channel_id}")

    def test_literal_segments_kept(self):
        assert route_key("GET", "/users/@me") == "GET /users/@me"

    def test_query_is_ignored(self):
        assert route_key("GET", "/guilds/1?with_counts=true") == "GET /guilds/{id}"


# ---------------------------------------------------------------------------
# Reserve / observe
# ---------------------------------------------------------------------------


class TestReserve:
    def test_unknown_bucket_allows_one_request(self, table):
        assert table.reserve(KEY) == (True, 0.0)
        assert table.reserve(KEY) == (False, POLL_INTERVAL)

    def test_route_without_headers_is_unlimited(self, table):
        table.reserve(KEY)
        table.observe(KEY, {}, 200)
        assert all(table.reserve(KEY)[0] for _ in range(10))

    def test_quota_from_headers(self, table, clock):
        table.reserve(KEY)
        table.observe(KEY, _headers(3, 2, 5.0), 200)
        assert table.reserve(KEY) == (True, 0.0)
        assert table.reserve(KEY) == (True, 0.0)
        granted, wait = table.reserve(KEY)
        assert not granted
        assert wait == pytest.approx(5.0)

    def test_refills_after_reset(self, table, clock):
        table.reserve(KEY)
        table.observe(KEY, _headers(1, 0, 2.0), 200)
        assert table.reserve(KEY)[0] is False
        clock.advance(2.0)
        assert table.reserve(KEY) == (True, 0.0)

    def test_server_remaining_accounts_for_in_flight(self, table):
        table.reserve(KEY)
        table.observe(KEY, _headers(5, 4, 10.0), 200)
        table.reserve(KEY)
        table.reserve(KEY)
        # Another consumer spent quota: the server reports 1 left while one
        # of our requests is still outstanding.
        table.observe(KEY, _headers(5, 1, 9.0), 200)
        assert table.get(KEY).remaining == 0

    def test_stale_response_cannot_refill(self, table, clock):
        table.reserve(KEY)
        table.observe(KEY, _headers(2, 1, 1.0), 200)
        assert table.reserve(KEY) == (True, 0.0)
        clock.advance(2.0)
        # The reset has passed but one response is still outstanding.
        assert table.reserve(KEY) == (False, POLL_INTERVAL)
        table.release(KEY)
        assert table.reserve(KEY) == (True, 0.0)

    def test_server_window_moves_forward(self, table, clock):
        table.reserve(KEY)
        table.observe(KEY, _headers(5, 4, 1.0), 200)
        for _ in range(4):
            table.reserve(KEY)
        table.observe(KEY, _headers(5, 4, 10.0), 200)
        info = table.get(KEY)
        # Three requests are still in flight against the new window.
        assert info.remaining == 1
        assert info.reset_after == pytest.approx(10.0)

    def test_denied_reserve_consumes_nothing(self, table):
        table.reserve(KEY)
        table.observe(KEY, _headers(5, 2, 10.0), 200)
        table.reserve("POST /channels/{id}/messages")
        table.observe("POST /channels/{id}/messages", {}, 429, retry_after=3.0, is_global=True)
        assert table.reserve(KEY)[0] is False
        assert table.get(KEY).remaining == 2

    def test_concurrent_threads_never_overdraw(self, table):
        table.reserve(KEY)
        table.observe(KEY, _headers(5, 5, 10.0), 200)
        results: list[bool] = []
        lock = threading.Lock()

        def worker():
            granted, _ = table.reserve(KEY)
            with lock:
                results.append(granted)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count(True) == 5


# ---------------------------------------------------------------------------
# 429 and the global bucket
# ---------------------------------------------------------------------------


class TestRateLimited:
    def test_429_overrides_local_state(self, table):
        table.reserve(KEY)
        table.observe(KEY, _headers(5, 5, 10.0), 200)
        table.reserve(KEY)
        table.observe(KEY, {}, 429, retry_after=2.0)
        granted, wait = table.reserve(KEY)
        assert not granted
        assert wait == pytest.approx(2.0)

    def test_429_uses_reset_after_header(self, table):
        table.reserve(KEY)
        table.observe(KEY, {"x-ratelimit-reset-after": "4"}, 429)
        assert table.reserve(KEY) == (False, pytest.approx(4.0))

    def test_zero_retry_after_at_clock_origin(self):
        table = BucketTable(clock=FakeClock(start=0.0))
        assert table.reserve(KEY) == (True, 0.0)
        table.observe(KEY, {}, 429, retry_after=0.0)
        assert table.get(KEY).reset_after == 0.0
        assert table.reserve(KEY) == (True, 0.0)

    def test_global_429_blocks_every_route(self, table):
        table.reserve(KEY)
        table.observe(KEY, {}, 429, retry_after=3.0, is_global=True)
        granted, wait = table.reserve("DELETE /guilds/{id}")
        assert not granted
        assert wait == pytest.approx(3.0)
        assert table._bucket("DELETE /guilds/{id}").in_flight == 0

    def test_global_limit_counted_locally(self, clock):
        table = BucketTable(clock=clock, global_limit=2, global_window=1.0)
        assert table.reserve("GET /a")[0]
        assert table.reserve("GET /b")[0]
        granted, wait = table.reserve("GET /c")
        assert not granted
        assert wait == pytest.approx(1.0)
        clock.advance(1.0)
        assert table.reserve("GET /c") == (True, 0.0)

    def test_global_limit_disabled(self, clock):
        table = BucketTable(clock=clock, global_limit=None)
        for n in range(100):
            assert table.reserve(f"GET /r{n}")[0]


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


class TestInspection:
    def test_get_unknown(self, table):
        assert table.get(KEY) is None

    def test_get_snapshot(self, table):
        table.reserve(KEY)
        table.observe(KEY, _headers(5, 3, 2.5, bucket="abc"), 200)
        info = table.get(KEY)
        assert info.limit == 5
        assert info.remaining == 3
        assert info.reset_after == pytest.approx(2.5)
        assert info.bucket == "abc"

    def test_clear(self, table):
        table.reserve(KEY)
        table.observe(KEY, {}, 429, retry_after=3.0, is_global=True)
        assert len(table) == 1
        table.clear()
        assert len(table) == 0
        assert table.reserve(KEY) == (True, 0.0)
