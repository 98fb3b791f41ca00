"""Shared type definitions for synced_state."""

from collections.abc import Callable
from typing import Any, Literal, Protocol

# Broadcast channel identifier
type Topic = str

# Key of one local/sync handler pair
type EventName = str

# Local function: (payload, session) -> (disposition, session, result)
type LocalFunc = Callable[[Any, Any], tuple[Any, Any, Any]]

# Sync function: (result, session) -> (disposition, session)
type SyncFunc = Callable[[Any, Any], tuple[Any, Any]]

# Fallback for unmatched sync messages: (message, session) -> anything
type FallbackFunc = Callable[[Any, Any], Any]

# What to do with a sync message no pair claims
type UnmatchedPolicy = Literal["raise", "ignore"]

# How an unmatched message was resolved (observability)
type UnmatchedResolution = Literal["fallback", "ignored", "raised"]


class BroadcastTarget(Protocol):
    """Anything that can fan a payload out to a topic's subscribers."""

    def broadcast(self, topic: Topic, event: EventName, payload: Any) -> Any: ...
