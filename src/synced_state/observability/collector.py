"""Sync collector: records dispatch steps into the event log.

A SyncedState consumer given a collector calls one ``record_*`` method per
dispatch step.  Consumers without a collector record nothing.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe to share between consumers running on different threads.

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from synced_state._types import UnmatchedResolution
from synced_state.observability.events import (
    BroadcastSent,
    DispatchEvent,
    EventHandled,
    MessageUnmatched,
    SyncApplied,
    now_ns,
)
from synced_state.observability.log import EventLog

if TYPE_CHECKING:
    from synced_state.config import SyncedStateConfig


class SyncCollector:
    """Event collector shared by one or more SyncedState consumers.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @classmethod
    def from_config(cls, config: SyncedStateConfig) -> SyncCollector:
        """Build a collector whose log keeps at most ``config.max_events``."""
        return cls(EventLog(max_events=config.max_events))

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    def record(self, event: DispatchEvent) -> None:
        """Record a prebuilt event."""
        self._log.append(event)

    def record_event_handled(
        self, topic: str, event: str, *, duration_ms: float = 0.0
    ) -> None:
        """Record a completed local dispatch."""
        self._log.append(
            EventHandled(
                topic=topic,
                event=event,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_broadcast(self, topic: str, event: str) -> None:
        """Record a broadcast handed to the broadcast target."""
        self._log.append(BroadcastSent(topic=topic, event=event, timestamp_ns=now_ns()))

    def record_sync_applied(
        self, topic: str, event: str, *, duration_ms: float = 0.0
    ) -> None:
        """Record a completed sync dispatch."""
        self._log.append(
            SyncApplied(
                topic=topic,
                event=event,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_unmatched(
        self, topic: str, event: str, *, resolution: UnmatchedResolution
    ) -> None:
        """Record a message that no registered pair claimed."""
        self._log.append(
            MessageUnmatched(
                topic=topic,
                event=event,
                resolution=resolution,
                timestamp_ns=now_ns(),
            )
        )
