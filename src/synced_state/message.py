"""Sync message: what the transport delivers to subscribed sessions."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from synced_state._types import EventName, Topic

# Marker for a field a message does not carry
MISSING: Any = object()


@dataclass(frozen=True, slots=True)
class SyncMessage:
    """A broadcast as seen by a subscribed session.

    Attributes:
        topic: Topic the payload was broadcast on.
        event: Event name of the local/sync pair that produced it.
        payload: Result returned by the local function.

    """

    topic: Topic
    event: EventName
    payload: Any


def read_field(message: object, name: str) -> Any:
    """Read *name* from a message object or mapping.

    Returns ``MISSING`` when the message carries no such field, so callers
    can treat malformed messages as unmatched.
    """
    if isinstance(message, Mapping):
        return message.get(name, MISSING)
    return getattr(message, name, MISSING)
