"""synced_state configuration.

SyncedStateConfig is the per-consumer configuration object, frozen after creation.
"""

from dataclasses import dataclass

from synced_state._errors import ConfigError
from synced_state._types import UnmatchedPolicy

_UNMATCHED_POLICIES: frozenset[str] = frozenset({"raise", "ignore"})


@dataclass(frozen=True, slots=True)
class SyncedStateConfig:
    """Configuration for one SyncedState consumer.

    Attributes:
        topic: Broadcast channel shared by every session of this consumer.
            Set once; immutable for the consumer's lifetime.
        on_unmatched: What ``handle_info`` does with a message that matches
            no registered pair when no fallback is configured: ``"raise"``
            (UnhandledMessageError) or ``"ignore"`` (returns the session as is).
        queue_size: Inbox bound for in-process sessions (0 = unbounded).
        max_events: Ring buffer size of the event log.

    """

    topic: str
    on_unmatched: UnmatchedPolicy = "raise"
    queue_size: int = 0
    max_events: int = 10_000

    def __post_init__(self) -> None:
        if not isinstance(self.topic, str) or not self.topic:
            msg = f"topic must be a non-empty string, got {self.topic!r}"
            raise ConfigError(msg)
        if self.on_unmatched not in _UNMATCHED_POLICIES:
            msg = (
                f"on_unmatched must be one of {sorted(_UNMATCHED_POLICIES)}, "
                f"got {self.on_unmatched!r}"
            )
            raise ConfigError(msg)
        if not _is_int(self.queue_size) or self.queue_size < 0:
            msg = f"queue_size must be an integer >= 0, got {self.queue_size!r}"
            raise ConfigError(msg)
        if not _is_int(self.max_events) or self.max_events <= 0:
            msg = f"max_events must be an integer > 0, got {self.max_events!r}"
            raise ConfigError(msg)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
