"""Request-scoped collaborators. Overridden in tests via dependency_overrides."""

import logging
from functools import lru_cache

from fastapi import HTTPException, status

from resumable_stream.core.redis import get_redis_client
from resumable_stream.services.generation import GeminiGenerationSource, GenerationSource
from resumable_stream.stream.notifier import NotificationChannel
from resumable_stream.stream.store import StreamStore

logger = logging.getLogger(__name__)


def get_stream_store() -> StreamStore:
    return StreamStore(get_redis_client())


def get_notifier() -> NotificationChannel:
    return NotificationChannel(get_redis_client())


@lru_cache(maxsize=1)
def _gemini_source() -> GeminiGenerationSource:
    return GeminiGenerationSource()


def get_generation_source() -> GenerationSource:
    try:
        return _gemini_source()
    except ValueError as e:
        logger.error("Generation source unavailable: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "error",
                "code": "GENERATION_UNAVAILABLE",
                "message": str(e),
            },
        )
