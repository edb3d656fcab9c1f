import asyncio

import httpx
import pytest

from discordrest import AsyncDiscordClient, BucketTable, RetryPolicy


class FakeClock:
    """Virtual time for the bucket table and dispatcher.

    ``sleep`` yields to the event loop once and then moves time forward to the
    sleeper's wake-up point, so concurrent sleepers overlap instead of adding up.
    """

    def __init__(self, start: float = 1000.0):
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        wake = self.current + seconds
        await asyncio.sleep(0)
        self.current = max(self.current, wake)

    def advance(self, seconds: float) -> None:
        self.current += seconds


class GatedClock(FakeClock):
    """A clock whose ``sleep`` never returns, for cancellation tests."""

    def __init__(self, start: float = 1000.0):
        super().__init__(start)
        self.sleeping = asyncio.Event()

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.sleeping.set()
        await asyncio.Future()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def make_client(clock):
    """Build clients wired to an ``httpx.MockTransport`` and the fake clock."""
    clients: list[AsyncDiscordClient] = []

    def _make(handler, *, policy=None, use_clock=None, global_limit=50, **kwargs):
        buckets = BucketTable(clock=use_clock or clock, global_limit=global_limit)
        client = AsyncDiscordClient(
            "test-token",
            base_url="http://test",
            retry_policy=policy or RetryPolicy(jitter=0.0),
            buckets=buckets,
            _transport=httpx.MockTransport(handler),
            **kwargs,
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.close()
