"""
message.py - Wire protocol shared by the producer and every relay.

Every log entry is exactly one of four variants, tagged by ``type``:

- chunk     one increment of generated output
- metadata  lifecycle milestones and terminal summaries
- event     reserved extension point (no payload yet)
- error     a processing failure surfaced in-stream

INVARIANT: Untyped mappings never travel past ``validate_message``.
Callers get a typed variant or ``None``, never an exception.
"""

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Variant tags. Closed set."""

    CHUNK = "chunk"
    METADATA = "metadata"
    EVENT = "event"
    ERROR = "error"


class StreamStatus(str, Enum):
    """Lifecycle states carried by metadata messages."""

    STARTED = "started"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERROR = "error"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ChunkMessage(_WireModel):
    type: Literal["chunk"] = "chunk"
    content: str


class MetadataMessage(_WireModel):
    type: Literal["metadata"] = "metadata"
    status: StreamStatus
    completed_at: Optional[datetime] = Field(None, alias="completedAt")
    total_chunks: Optional[int] = Field(None, alias="totalChunks")
    full_content: Optional[str] = Field(None, alias="fullContent")
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (StreamStatus.COMPLETED, StreamStatus.ERROR)


class EventMessage(_WireModel):
    type: Literal["event"] = "event"


class ErrorMessage(_WireModel):
    type: Literal["error"] = "error"
    error: str


Message = Annotated[
    Union[ChunkMessage, MetadataMessage, EventMessage, ErrorMessage],
    Field(discriminator="type"),
]

_message_adapter = TypeAdapter(Message)


def validate_message(raw: Any) -> Optional[Message]:
    """
    Validate an untyped mapping into a typed message.

    Returns None for anything malformed (missing or unknown ``type``,
    missing required field, unknown ``status``, non-mapping input).
    """
    try:
        return _message_adapter.validate_python(raw)
    except ValidationError as exc:
        logger.debug("Rejected message: %d validation error(s)", exc.error_count())
        return None


def serialize_message(message: Message) -> dict[str, Any]:
    """JSON-ready wire mapping (camelCase keys, absent fields omitted)."""
    return message.model_dump(mode="json", by_alias=True, exclude_none=True)


def is_terminal(message: Message) -> bool:
    """True for messages after which a stream produces nothing further."""
    if isinstance(message, ErrorMessage):
        return True
    return isinstance(message, MetadataMessage) and message.is_terminal


# --- Redis stream field codec ---


def encode_fields(wire: Mapping[str, Any]) -> dict[str, str]:
    """
    Flatten a wire mapping into Redis stream fields.

    Each value is JSON-encoded so numbers stay numbers after a round trip.
    """
    return {key: json.dumps(value) for key, value in wire.items()}


# Wire keys typed as strings. A raw value that happens to parse as some
# other JSON type ("2024", "true") is kept as written.
_STRING_FIELDS = frozenset(
    {"type", "content", "status", "completedAt", "fullContent", "error"}
)


def decode_fields(fields: Mapping[str, str]) -> dict[str, Any]:
    """
    Inverse of ``encode_fields``.

    Also accepts entries written with raw, unencoded values: non-JSON
    values are kept verbatim, and string-typed keys stay strings.
    """
    decoded: dict[str, Any] = {}
    for key, value in fields.items():
        try:
            parsed = json.loads(value)
        except (TypeError, ValueError):
            decoded[key] = value
            continue
        if key in _STRING_FIELDS and not isinstance(parsed, str):
            decoded[key] = value
        else:
            decoded[key] = parsed
    return decoded
