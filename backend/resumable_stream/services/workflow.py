"""
workflow.py - Drives one producer from start to terminal state.

STEPS (logged by name):
1. mark-stream-start      append ``started`` metadata
2. generate-llm-response  append one chunk per upstream increment
3. mark-stream-end        append ``completed`` metadata

Upstream failures are raised as GenerationError. The stream only gets an
in-band ``error`` summary when STREAM_ERRORS_IN_BAND is enabled.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from resumable_stream.config import settings
from resumable_stream.services.generation import GenerationSource
from resumable_stream.stream.errors import GenerationError
from resumable_stream.stream.notifier import NotificationChannel
from resumable_stream.stream.producer import GenerationResult, StreamProducer
from resumable_stream.stream.store import StreamStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StreamWorkflow:
    def __init__(
        self,
        store: StreamStore,
        notifier: NotificationChannel,
        source: GenerationSource,
        errors_in_band: bool | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.source = source
        self.errors_in_band = (
            settings.STREAM_ERRORS_IN_BAND if errors_in_band is None else errors_in_band
        )

    async def run(self, prompt: str, session_id: str) -> GenerationResult:
        producer = StreamProducer(self.store, self.notifier, session_id)

        await self._step("mark-stream-start", session_id, producer.start)

        async def generate() -> GenerationResult:
            try:
                async for text in self.source.stream(prompt):
                    await producer.write_chunk(text)
            except Exception as e:
                if self.errors_in_band:
                    await producer.fail(str(e) or e.__class__.__name__)
                raise GenerationError(
                    f"Generation failed for session {session_id}: {e}",
                    details={"session_id": session_id, "chunks": producer.total_chunks},
                ) from e
            return producer.result()

        result = await self._step("generate-llm-response", session_id, generate)
        await self._step("mark-stream-end", session_id, producer.complete)
        return result

    async def _step(
        self, name: str, session_id: str, fn: Callable[[], Awaitable[T]]
    ) -> T:
        started = time.monotonic()
        logger.info("Session %s: step '%s' started", session_id, name)
        result = await fn()
        logger.info(
            "Session %s: step '%s' finished in %.3fs",
            session_id,
            name,
            time.monotonic() - started,
        )
        return result


async def run_stream_workflow(workflow: StreamWorkflow, prompt: str, session_id: str) -> None:
    """Background-task entry point. Final failures are logged here."""
    try:
        result = await workflow.run(prompt, session_id)
    except Exception:
        logger.exception("Stream workflow failed for session %s", session_id)
        return
    logger.info(
        "Stream workflow finished for session %s: %d chunks",
        session_id,
        result.total_chunks,
    )
