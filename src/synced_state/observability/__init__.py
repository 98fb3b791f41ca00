"""Dispatch observability: what each SyncedState consumer did, and when.

Records one frozen event per dispatch step:
- **EventHandled**: a local function ran and its result was broadcast
- **BroadcastSent**: the broadcast target was called
- **SyncApplied**: a sync function ran for an incoming broadcast
- **MessageUnmatched**: a message no registered pair claimed

Quick Start:
    >>> from synced_state.observability import SyncCollector
    >>> collector = SyncCollector()
    >>> # SyncedState(topic="room:1", target=pubsub, collector=collector)
    >>> # collector.log.query(event_name="increment")

"""

from synced_state.observability.collector import SyncCollector
from synced_state.observability.events import (
    BroadcastSent,
    DispatchEvent,
    EventHandled,
    MessageUnmatched,
    SyncApplied,
    now_ns,
)
from synced_state.observability.log import EventLog

__all__ = [
    "BroadcastSent",
    "DispatchEvent",
    "EventHandled",
    "EventLog",
    "MessageUnmatched",
    "SyncApplied",
    "SyncCollector",
    "now_ns",
]
