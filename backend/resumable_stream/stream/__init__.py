"""Stream distribution subsystem: store, notifier, producer, relay."""

from .errors import (
    GenerationError,
    ProducerStateError,
    SessionIdMissingError,
    StreamError,
    StreamNotFoundError,
    SubscriptionError,
)
from .notifier import Notification, NotificationChannel, Subscription
from .producer import GenerationResult, ProducerState, StreamProducer
from .relay import StreamRelay
from .store import LogEntry, StreamStore

__all__ = [
    "GenerationError",
    "GenerationResult",
    "LogEntry",
    "Notification",
    "NotificationChannel",
    "ProducerState",
    "ProducerStateError",
    "SessionIdMissingError",
    "StreamError",
    "StreamNotFoundError",
    "StreamProducer",
    "StreamRelay",
    "StreamStore",
    "Subscription",
    "SubscriptionError",
]
