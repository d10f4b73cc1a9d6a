"""
redis.py - Redis client for the resumable stream log and wake-up channel.

One Redis Stream per session is the durable, append-only log.
The same key doubles as the pub/sub channel used to wake idle relays.

NAMING:
- Log key:      <STREAM_KEY_PREFIX><session_id>   (e.g. llm:stream:s1)
- Replay group: <REPLAY_GROUP_PREFIX><uuid hex>   (unique per connection)
"""

import logging
import uuid
from functools import lru_cache

import redis.asyncio as redis

from resumable_stream.config import settings

logger = logging.getLogger(__name__)

# XGROUP CREATE start id meaning "deliver everything already in the log"
BEGINNING = "0"

# XREADGROUP id meaning "entries never delivered to this group"
UNDELIVERED = ">"


@lru_cache(maxsize=1)
def get_redis_client() -> redis.Redis:
    """
    Get singleton async Redis client.

    Connections are opened lazily on first command, so construction
    never blocks. Use ``ping_redis`` to check reachability.
    """
    client = redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=5,
        retry_on_timeout=True,
    )
    logger.info("Redis client configured for %s", settings.REDIS_URL)
    return client


async def ping_redis(client: redis.Redis) -> bool:
    """Return True when Redis answers PING."""
    try:
        return bool(await client.ping())
    except redis.RedisError:
        logger.warning("Redis ping failed for %s", settings.REDIS_URL, exc_info=True)
        return False


def stream_key(session_id: str) -> str:
    """Deterministic log key (and notification topic) for a session."""
    return f"{settings.STREAM_KEY_PREFIX}{session_id}"


def new_replay_group_name() -> str:
    """Group name unique per connection attempt so reconnects never collide."""
    return f"{settings.REPLAY_GROUP_PREFIX}{uuid.uuid4().hex}"
