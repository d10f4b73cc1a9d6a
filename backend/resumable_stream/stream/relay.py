"""
relay.py - Per-connection reader: replay full history, then follow live.

CONNECTION PROTOCOL:
1. Reject a missing session id
2. Reject a stream that does not exist yet (caller may retry)
3. Create a fresh replay group at the beginning of the log
4. Subscribe, then drain once unconditionally (covers wake-ups lost
   between the producer's append and our subscribe)
5. Re-drain on every notification; forward everything drained, in log order
6. Subscription failure → forward one synthesized error message, stop
7. Cancellation → unsubscribe; the replay group is left to the store

A relay is a passive observer. Nothing it does affects production.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from resumable_stream.config import settings
from resumable_stream.core.redis import new_replay_group_name, stream_key
from resumable_stream.schemas.message import ErrorMessage, Message, is_terminal
from resumable_stream.stream.errors import (
    SessionIdMissingError,
    StreamNotFoundError,
    SubscriptionError,
)
from resumable_stream.stream.notifier import NotificationChannel
from resumable_stream.stream.store import StreamStore

logger = logging.getLogger(__name__)


class StreamRelay:
    def __init__(
        self,
        store: StreamStore,
        notifier: NotificationChannel,
        session_id: str | None,
        consumer: str | None = None,
        close_on_terminal: bool = True,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.session_id = session_id
        self.consumer = consumer or settings.RELAY_CONSUMER_NAME
        self.close_on_terminal = close_on_terminal
        self.stream_key: str | None = None
        self.group: str | None = None
        self.forwarded = 0
        self.skipped = 0

    async def open(self) -> None:
        """
        Validate the session and create this connection's replay group.

        Raises:
            SessionIdMissingError: no session id supplied
            StreamNotFoundError: the session's log does not exist yet
        """
        if not self.session_id:
            raise SessionIdMissingError()

        key = stream_key(self.session_id)
        if not await self.store.exists(key):
            raise StreamNotFoundError(self.session_id)

        self.stream_key = key
        self.group = new_replay_group_name()
        await self.store.create_replay_group(key, self.group)

    async def messages(self) -> AsyncIterator[Message]:
        """
        Yield every message of the session, history first, then live.

        Ends after a terminal message when ``close_on_terminal`` is set,
        after a subscription failure, or when the consuming task is cancelled.
        Consumers that may stop early should wrap this in ``aclosing`` so the
        unsubscribe runs without waiting for garbage collection.
        """
        if self.group is None:
            await self.open()

        try:
            subscription = await self.notifier.subscribe(self.stream_key)
        except SubscriptionError as e:
            logger.error("SSE subscribe failed on %s: %s", self.stream_key, e)
            yield ErrorMessage(error=e.message)
            return

        logger.info(
            "Relay attached to %s (group=%s, consumer=%s)",
            self.stream_key,
            self.group,
            self.consumer,
        )
        try:
            terminated = False
            for message in await self._drain():
                yield message
                terminated = terminated or is_terminal(message)
            if terminated and self.close_on_terminal:
                return

            try:
                async with aclosing(aiter(subscription)) as notifications:
                    async for _notification in notifications:
                        for message in await self._drain():
                            yield message
                            terminated = terminated or is_terminal(message)
                        if terminated and self.close_on_terminal:
                            return
            except SubscriptionError as e:
                logger.error("SSE subscription error on %s: %s", self.stream_key, e)
                yield ErrorMessage(error=e.message)
        finally:
            await subscription.unsubscribe()
            logger.info(
                "Relay detached from %s: %d forwarded, %d skipped",
                self.stream_key,
                self.forwarded,
                self.skipped,
            )

    async def _drain(self) -> list[Message]:
        entries = await self.store.drain(self.stream_key, self.group, self.consumer)
        messages: list[Message] = []
        for entry in entries:
            if entry.message is None:
                self.skipped += 1
                continue
            messages.append(entry.message)
        self.forwarded += len(messages)
        return messages
