"""
store.py - Append-only per-session log over Redis Streams.

REPLAY MODEL:
Consumer groups normally split work so each entry goes to one worker.
Here every connection gets its own brand-new group starting at the
beginning of the log, so each observer independently receives full
history followed by live entries.

DELIVERY:
``drain`` never acknowledges. An entry handed to a group is never handed
to that group again, even if the caller dies before forwarding it
(at-most-once per group). Abandoned groups are left to Redis.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import redis.asyncio as redis

from resumable_stream.config import settings
from resumable_stream.core.redis import BEGINNING, UNDELIVERED
from resumable_stream.schemas.message import (
    Message,
    decode_fields,
    encode_fields,
    serialize_message,
    validate_message,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    """
    One log entry as read back from the store.

    ``message`` is None when the stored fields fail protocol validation.
    """

    entry_id: str
    message: Optional[Message]

    @property
    def is_valid(self) -> bool:
        return self.message is not None


class StreamStore:
    """Redis Streams adapter: append, exists, replay groups, drain."""

    def __init__(self, client: redis.Redis, maxlen: int | None = None) -> None:
        self.redis = client
        self.maxlen = maxlen if maxlen is not None else settings.STREAM_MAXLEN

    async def append(self, stream_id: str, message: Message) -> str:
        """Add one entry at the tail. Returns the store-assigned entry id."""
        fields = encode_fields(serialize_message(message))
        if self.maxlen:
            entry_id = await self.redis.xadd(
                stream_id, fields, maxlen=self.maxlen, approximate=True
            )
        else:
            entry_id = await self.redis.xadd(stream_id, fields)
        logger.debug("Appended %s entry %s to %s", message.type, entry_id, stream_id)
        return entry_id

    async def exists(self, stream_id: str) -> bool:
        return bool(await self.redis.exists(stream_id))

    async def create_replay_group(
        self, stream_id: str, group: str, start: str = BEGINNING
    ) -> bool:
        """
        Create a replay group positioned at ``start``.

        Idempotent — returns False when the group already exists, since a
        reconnect may race a prior creation.
        """
        try:
            await self.redis.xgroup_create(stream_id, group, id=start)
        except redis.ResponseError as e:
            if "BUSYGROUP" in str(e):
                logger.debug("Replay group '%s' already exists on %s", group, stream_id)
                return False
            raise
        logger.info("Created replay group '%s' on %s at %s", group, stream_id, start)
        return True

    async def drain(self, stream_id: str, group: str, consumer: str) -> list[LogEntry]:
        """
        Non-blocking read of every entry not yet delivered to ``group``.

        Entries come back in log order and count as delivered immediately.
        """
        response = await self.redis.xreadgroup(
            groupname=group,
            consumername=consumer,
            streams={stream_id: UNDELIVERED},
        )
        if not response:
            return []

        entries: list[LogEntry] = []
        for _stream_name, stream_messages in response:
            for entry_id, fields in stream_messages:
                entries.append(self._to_entry(entry_id, fields))
        return entries

    async def history(self, stream_id: str) -> list[LogEntry]:
        """Whole log, oldest first. Does not touch any group's delivery state."""
        raw = await self.redis.xrange(stream_id)
        return [self._to_entry(entry_id, fields) for entry_id, fields in raw]

    @staticmethod
    def _to_entry(entry_id: str, fields: dict[str, Any] | None) -> LogEntry:
        # Trimmed entries can come back with no fields
        message = validate_message(decode_fields(fields or {}))
        if message is None:
            logger.debug("Entry %s failed protocol validation", entry_id)
        return LogEntry(entry_id=entry_id, message=message)
