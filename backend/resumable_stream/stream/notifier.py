"""
notifier.py - Best-effort wake-up signal over Redis pub/sub.

A notification means "something was appended, go re-drain". It carries
no content of record: ordering and completeness come from the log only.
A publish with no listeners is simply lost.
"""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio.client import PubSub

from resumable_stream.stream.errors import SubscriptionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    topic: str
    hint: Optional[str] = None


class Subscription:
    """
    Open subscription to one topic.

    Iterate to receive one ``Notification`` per publish. Transport
    failures surface as ``SubscriptionError`` from the iterator.
    ``unsubscribe`` is idempotent and safe on every exit path.
    """

    def __init__(self, pubsub: PubSub, topic: str) -> None:
        self._pubsub = pubsub
        self.topic = topic
        self.closed = False

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.unsubscribe()

    def __aiter__(self) -> AsyncIterator[Notification]:
        return self._listen()

    async def _listen(self) -> AsyncIterator[Notification]:
        try:
            async for raw in self._pubsub.listen():
                if raw.get("type") != "message":
                    continue
                yield Notification(topic=self.topic, hint=_parse_hint(raw.get("data")))
        except redis.RedisError as e:
            if self.closed:
                return
            raise SubscriptionError(str(e) or e.__class__.__name__) from e

    async def unsubscribe(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._pubsub.unsubscribe(self.topic)
        except redis.RedisError:
            logger.debug("Unsubscribe from %s failed", self.topic, exc_info=True)
        finally:
            await self._pubsub.aclose()
        logger.debug("Unsubscribed from %s", self.topic)


class NotificationChannel:
    """Topic-scoped broadcast: one publisher, any number of subscribers."""

    def __init__(self, client: redis.Redis) -> None:
        self.redis = client

    async def publish(self, topic: str, hint: str | None = None) -> int:
        """
        Fire-and-forget publish. Returns the receiver count.

        Failures are logged and reported as zero receivers: a lost wake-up
        is tolerated because relays always drain after subscribing.
        """
        payload = json.dumps({"type": hint}) if hint is not None else "{}"
        try:
            return await self.redis.publish(topic, payload)
        except redis.RedisError:
            logger.warning("Notification publish to %s failed", topic, exc_info=True)
            return 0

    async def subscribe(self, topic: str) -> Subscription:
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(topic)
        except redis.RedisError as e:
            await pubsub.aclose()
            raise SubscriptionError(str(e) or e.__class__.__name__) from e
        logger.debug("Subscribed to %s", topic)
        return Subscription(pubsub, topic)


def _parse_hint(data: Any) -> Optional[str]:
    if not isinstance(data, str):
        return None
    try:
        decoded = json.loads(data)
    except ValueError:
        return data
    if isinstance(decoded, dict):
        return decoded.get("type")
    return None
