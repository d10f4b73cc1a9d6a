"""
check_stream.py - Resumable SSE feed for one session.

ENDPOINT: GET /v1/check-stream?sessionId=...

Every connection replays the session from its first message, then
follows live appends. Each message is one SSE event:

    data: {"type": "chunk", "content": "..."}
    <blank line>

RESPONSE CODES:
- 200: event stream (even when nothing new has been appended yet)
- 400: sessionId missing
- 412: stream does not (yet) exist; clients may retry
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sse_starlette.sse import EventSourceResponse

from resumable_stream.api.deps import get_notifier, get_stream_store
from resumable_stream.config import settings
from resumable_stream.schemas.message import Message, serialize_message
from resumable_stream.schemas.stream import RejectionResponse
from resumable_stream.stream.errors import SessionIdMissingError, StreamNotFoundError
from resumable_stream.stream.notifier import NotificationChannel
from resumable_stream.stream.relay import StreamRelay
from resumable_stream.stream.store import StreamStore

logger = logging.getLogger(__name__)

router = APIRouter()


def sse_message(message: Message) -> dict[str, str]:
    """Encode a message as an EventSource ``data`` event with a compact JSON body."""
    return {"data": json.dumps(serialize_message(message), separators=(",", ":"))}


async def relay_events(relay: StreamRelay) -> AsyncIterator[dict[str, str]]:
    """SSE events for an opened relay. Closing this closes the relay too."""
    async with aclosing(relay.messages()) as messages:
        async for message in messages:
            yield sse_message(message)


@router.get(
    "",
    summary="Replay and follow a session stream",
    responses={
        400: {"model": RejectionResponse, "description": "sessionId missing"},
        412: {"model": RejectionResponse, "description": "Stream does not (yet) exist"},
    },
)
async def check_stream(
    session_id: str | None = Query(None, alias="sessionId"),
    store: StreamStore = Depends(get_stream_store),
    notifier: NotificationChannel = Depends(get_notifier),
) -> EventSourceResponse:
    relay = StreamRelay(store, notifier, session_id)
    try:
        await relay.open()
    except SessionIdMissingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"status": "rejected", "code": e.code, "message": e.message},
        )
    except StreamNotFoundError as e:
        logger.info("Stream for session %s does not exist yet", session_id)
        raise HTTPException(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail={"status": "rejected", "code": e.code, "message": e.message},
        )

    return EventSourceResponse(
        relay_events(relay),
        headers={
            "Cache-Control": "no-cache, no-transform",
            "X-Accel-Buffering": "no",
        },
        ping=settings.SSE_PING_SECONDS,
        sep="\n",
    )
