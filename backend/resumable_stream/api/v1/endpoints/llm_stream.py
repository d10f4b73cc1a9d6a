"""
llm_stream.py - Start a resumable generation session.

ENDPOINT: POST /v1/llm-stream

Returns 202 Accepted once the request is validated; generation runs as a
background task and is observed through /v1/check-stream.

RESPONSE CODES:
- 202 Accepted: workflow scheduled
- 422 Unprocessable Entity: missing prompt or sessionId
- 503 Service Unavailable: Redis unreachable or generation not configured
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from resumable_stream.api.deps import get_generation_source, get_notifier, get_stream_store
from resumable_stream.core.redis import ping_redis, stream_key
from resumable_stream.schemas.stream import StartStreamRequest, StartStreamResponse
from resumable_stream.services.generation import GenerationSource
from resumable_stream.services.workflow import StreamWorkflow, run_stream_workflow
from resumable_stream.stream.notifier import NotificationChannel
from resumable_stream.stream.store import StreamStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=StartStreamResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a resumable LLM stream",
)
async def start_stream(
    request: StartStreamRequest,
    background_tasks: BackgroundTasks,
    store: StreamStore = Depends(get_stream_store),
    notifier: NotificationChannel = Depends(get_notifier),
    source: GenerationSource = Depends(get_generation_source),
) -> StartStreamResponse:
    """
    Schedule the generation workflow for ``sessionId``.

    The session's log appears once the workflow appends its ``started``
    milestone; relays opened before that get 412 and may retry.
    """
    if not await ping_redis(store.redis):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stream store unavailable. Retry later.",
        )

    workflow = StreamWorkflow(store, notifier, source)
    background_tasks.add_task(
        run_stream_workflow, workflow, request.prompt, request.session_id
    )
    logger.info("Session %s accepted for generation", request.session_id)

    return StartStreamResponse(
        session_id=request.session_id,
        stream_key=stream_key(request.session_id),
    )
