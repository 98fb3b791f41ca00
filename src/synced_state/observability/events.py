"""Event model for dispatch observability.

One event type per dispatch step of a SyncedState consumer.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- ``topic`` and ``event``: the consumer topic and the event name involved

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass

from synced_state._types import UnmatchedResolution


@dataclass(frozen=True, slots=True)
class EventHandled:
    """A local function ran and its result was broadcast.

    Attributes:
        topic: Topic of the consumer that handled the event.
        event: Event name.
        duration_ms: Time spent in local dispatch (function + broadcast).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    topic: str
    event: str
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class BroadcastSent:
    """A broadcast was handed to the broadcast target.

    Attributes:
        topic: Topic the payload was broadcast on.
        event: Event name carried by the broadcast.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    topic: str
    event: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SyncApplied:
    """A sync function ran for an incoming broadcast.

    Attributes:
        topic: Topic of the consumer that applied the sync.
        event: Event name of the message.
        duration_ms: Time spent in the sync function.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    topic: str
    event: str
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class MessageUnmatched:
    """A message reached ``handle_info`` but matched no registered pair.

    Attributes:
        topic: Topic carried by the message (may differ from the consumer's).
        event: Event name carried by the message.
        resolution: How the message was resolved.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    topic: str
    event: str
    resolution: UnmatchedResolution
    timestamp_ns: int


type DispatchEvent = EventHandled | BroadcastSent | SyncApplied | MessageUnmatched


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
