"""
producer.py - Single writer for one session's log.

STATE MACHINE:
    NOT_STARTED → STARTED → STREAMING* → COMPLETED | ERROR

Every append is followed by a notification publish. Running totals live
in memory only; the producer is their sole authority until the terminal
summary is written.

Exactly one producer per session. The log append is the serialization
point, so no locking is done here.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from resumable_stream.core.redis import stream_key
from resumable_stream.schemas.message import (
    ChunkMessage,
    Message,
    MetadataMessage,
    StreamStatus,
)
from resumable_stream.stream.errors import ProducerStateError
from resumable_stream.stream.notifier import NotificationChannel
from resumable_stream.stream.store import StreamStore

logger = logging.getLogger(__name__)


class ProducerState(Enum):
    NOT_STARTED = "NOT_STARTED"
    STARTED = "STARTED"
    STREAMING = "STREAMING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


TERMINAL_STATES = (ProducerState.COMPLETED, ProducerState.ERROR)


@dataclass
class GenerationResult:
    session_id: str
    total_chunks: int
    full_content: str


class StreamProducer:
    def __init__(
        self,
        store: StreamStore,
        notifier: NotificationChannel,
        session_id: str,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.session_id = session_id
        self.stream_key = stream_key(session_id)
        self.state = ProducerState.NOT_STARTED
        self.total_chunks = 0
        self.full_content = ""

    async def start(self) -> str:
        """Append the ``started`` milestone with zeroed totals."""
        self._require(ProducerState.NOT_STARTED)
        entry_id = await self._emit(
            MetadataMessage(
                status=StreamStatus.STARTED,
                completed_at=datetime.now(UTC),
                total_chunks=0,
                full_content="",
            )
        )
        self.state = ProducerState.STARTED
        logger.info("Stream %s started", self.stream_key)
        return entry_id

    async def write_chunk(self, content: str) -> str | None:
        """Append one increment. Empty increments are skipped."""
        self._require(ProducerState.STARTED, ProducerState.STREAMING)
        if not content:
            return None
        entry_id = await self._emit(ChunkMessage(content=content))
        self.state = ProducerState.STREAMING
        self.total_chunks += 1
        self.full_content += content
        return entry_id

    async def complete(self) -> str:
        """Append the terminal ``completed`` summary."""
        self._require(ProducerState.STARTED, ProducerState.STREAMING)
        entry_id = await self._emit(
            MetadataMessage(
                status=StreamStatus.COMPLETED,
                completed_at=datetime.now(UTC),
                total_chunks=self.total_chunks,
                full_content=self.full_content,
            )
        )
        self.state = ProducerState.COMPLETED
        logger.info(
            "Stream %s completed: %d chunks, %d chars",
            self.stream_key,
            self.total_chunks,
            len(self.full_content),
        )
        return entry_id

    async def fail(self, error: str) -> str:
        """
        Append a terminal ``error`` summary.

        Only for callers that want the failure visible in-stream; the
        default failure path is to raise to the workflow instead.
        """
        if self.state in TERMINAL_STATES:
            raise ProducerStateError(
                f"Stream {self.stream_key} already terminated ({self.state.value})"
            )
        entry_id = await self._emit(
            MetadataMessage(
                status=StreamStatus.ERROR,
                completed_at=datetime.now(UTC),
                total_chunks=self.total_chunks,
                full_content=self.full_content,
                error=error,
            )
        )
        self.state = ProducerState.ERROR
        logger.warning("Stream %s failed: %s", self.stream_key, error)
        return entry_id

    def result(self) -> GenerationResult:
        return GenerationResult(
            session_id=self.session_id,
            total_chunks=self.total_chunks,
            full_content=self.full_content,
        )

    async def _emit(self, message: Message) -> str:
        entry_id = await self.store.append(self.stream_key, message)
        await self.notifier.publish(self.stream_key, message.type)
        return entry_id

    def _require(self, *allowed: ProducerState) -> None:
        if self.state not in allowed:
            raise ProducerStateError(
                f"Stream {self.stream_key}: invalid transition from {self.state.value}",
                details={"allowed": [s.value for s in allowed]},
            )
