"""
conftest.py - Shared fixtures for stream tests.

Test strategy:
- In-memory async Redis double covering the stream, consumer-group and
  pub/sub commands the service uses (no real Redis needed)
- Generation sources are scripted async iterators
- API tests swap collaborators through FastAPI dependency_overrides
"""

import asyncio
import os
import sys
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

# Ensure backend is importable without installation
_backend_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _backend_path not in sys.path:
    sys.path.insert(0, _backend_path)

from resumable_stream.stream.notifier import NotificationChannel
from resumable_stream.stream.store import StreamStore

_CLOSED = object()


class FakePubSub:
    """Mimics redis.asyncio.client.PubSub for a single FakeRedis."""

    def __init__(self, server: "FakeRedis") -> None:
        self.server = server
        self.channels: set[str] = set()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        for channel in channels:
            self.channels.add(channel)
            self.server.subscribers.setdefault(channel, []).append(self)
            self.queue.put_nowait(
                {"type": "subscribe", "pattern": None, "channel": channel, "data": 1}
            )

    async def unsubscribe(self, *channels: str) -> None:
        for channel in channels or tuple(self.channels):
            self.channels.discard(channel)
            listeners = self.server.subscribers.get(channel, [])
            if self in listeners:
                listeners.remove(self)
        if not self.channels:
            self.queue.put_nowait(_CLOSED)

    async def listen(self):
        while True:
            item = await self.queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def aclose(self) -> None:
        self.closed = True
        if self.channels:
            await self.unsubscribe()

    def inject_error(self, exc: Exception) -> None:
        self.queue.put_nowait(exc)


class FakeRedis:
    """In-memory subset of redis.asyncio.Redis (decode_responses=True)."""

    def __init__(self) -> None:
        self.streams: dict[str, list[tuple[str, dict[str, str]]]] = {}
        self.groups: dict[tuple[str, str], int] = {}
        self.subscribers: dict[str, list[FakePubSub]] = {}
        self.published: list[tuple[str, str]] = []
        self.pubsubs: list[FakePubSub] = []
        self._seq = 0
        self.ping_ok = True

    async def ping(self) -> bool:
        if not self.ping_ok:
            raise RedisConnectionError("Redis unreachable")
        return True

    async def xadd(self, name: str, fields: dict[str, Any], **kwargs: Any) -> str:
        self._seq += 1
        entry_id = f"{1700000000000 + self._seq}-0"
        self.streams.setdefault(name, []).append(
            (entry_id, {k: str(v) for k, v in fields.items()})
        )
        return entry_id

    async def exists(self, *names: str) -> int:
        return sum(1 for name in names if name in self.streams)

    async def xgroup_create(
        self, name: str, groupname: str, id: str = "$", mkstream: bool = False
    ) -> bool:
        if name not in self.streams:
            if not mkstream:
                raise ResponseError(
                    "The XGROUP subcommand requires the key to exist. "
                    "Note that for CREATE you may want to use the MKSTREAM option "
                    "to create an empty stream automatically."
                )
            self.streams[name] = []
        if (name, groupname) in self.groups:
            raise ResponseError("BUSYGROUP Consumer Group name already exists")
        self.groups[(name, groupname)] = 0 if id == "0" else len(self.streams[name])
        return True

    async def xreadgroup(
        self,
        groupname: str,
        consumername: str,
        streams: dict[str, str],
        count: int | None = None,
        block: int | None = None,
        noack: bool = False,
    ) -> list:
        result = []
        for name, position in streams.items():
            if (name, groupname) not in self.groups:
                raise ResponseError(f"NOGROUP No such key '{name}' or consumer group")
            if position != ">":
                continue
            start = self.groups[(name, groupname)]
            entries = self.streams[name][start:]
            if count is not None:
                entries = entries[:count]
            self.groups[(name, groupname)] = start + len(entries)
            if entries:
                result.append([name, [(eid, dict(f)) for eid, f in entries]])
        return result

    async def xrange(self, name: str, min: str = "-", max: str = "+") -> list:
        return [(eid, dict(f)) for eid, f in self.streams.get(name, [])]

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        listeners = list(self.subscribers.get(channel, []))
        for pubsub in listeners:
            pubsub.queue.put_nowait(
                {"type": "message", "pattern": None, "channel": channel, "data": message}
            )
        return len(listeners)

    def pubsub(self) -> FakePubSub:
        pubsub = FakePubSub(self)
        self.pubsubs.append(pubsub)
        return pubsub

    def subscriber_count(self, channel: str) -> int:
        return len(self.subscribers.get(channel, []))

    def add_raw_entry(self, name: str, fields: dict[str, str]) -> str:
        """Append fields verbatim, bypassing the protocol codec."""
        self._seq += 1
        entry_id = f"{1700000000000 + self._seq}-0"
        self.streams.setdefault(name, []).append((entry_id, dict(fields)))
        return entry_id


class ScriptedSource:
    """Generation source yielding fixed increments, optionally failing after them."""

    def __init__(self, chunks: list[str], error: Exception | None = None) -> None:
        self.chunks = chunks
        self.error = error
        self.prompts: list[str] = []

    async def stream(self, prompt: str):
        self.prompts.append(prompt)
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


async def wait_for_subscriber(fake: FakeRedis, channel: str, timeout: float = 1.0) -> None:
    """Yield to the loop until someone listens on ``channel``."""

    async def _poll() -> None:
        while not fake.subscriber_count(channel):
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis) -> StreamStore:
    return StreamStore(fake_redis)


@pytest.fixture
def notifier(fake_redis) -> NotificationChannel:
    return NotificationChannel(fake_redis)


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette keeps a process-wide exit event bound to the first loop."""
    from sse_starlette.sse import AppStatus

    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None
    yield
