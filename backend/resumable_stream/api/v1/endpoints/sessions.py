"""
sessions.py - Read-only view of a session log.

ENDPOINT: GET /v1/sessions/{session_id}/messages

Reads the whole log without creating a replay group, so it never affects
what any relay receives. Entries failing validation are omitted.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from resumable_stream.api.deps import get_stream_store
from resumable_stream.core.redis import stream_key
from resumable_stream.schemas.message import serialize_message
from resumable_stream.schemas.stream import StreamHistoryResponse
from resumable_stream.stream.errors import StreamNotFoundError
from resumable_stream.stream.store import StreamStore

router = APIRouter()


@router.get(
    "/{session_id}/messages",
    response_model=StreamHistoryResponse,
    response_model_by_alias=True,
)
async def get_session_messages(
    session_id: str, store: StreamStore = Depends(get_stream_store)
) -> StreamHistoryResponse:
    key = stream_key(session_id)
    if not await store.exists(key):
        e = StreamNotFoundError(session_id)
        raise HTTPException(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail={"status": "rejected", "code": e.code, "message": e.message},
        )

    entries = await store.history(key)
    return StreamHistoryResponse(
        session_id=session_id,
        messages=[serialize_message(e.message) for e in entries if e.is_valid],
    )
