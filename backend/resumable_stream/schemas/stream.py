"""
stream.py - Pydantic schemas for the stream HTTP API.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StartStreamRequest(BaseModel):
    """Body of POST /llm-stream."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., min_length=1, description="Free-text prompt")
    session_id: str = Field(
        ..., alias="sessionId", min_length=1, description="Caller-chosen session id"
    )


class StartStreamResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "accepted"
    session_id: str = Field(..., alias="sessionId")
    stream_key: str = Field(..., alias="streamKey")


class StreamHistoryResponse(BaseModel):
    """Full, non-consuming view of a session log."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    messages: list[dict[str, Any]] = Field(default_factory=list)


class RejectionResponse(BaseModel):
    status: str = "rejected"
    code: str
    message: str
