"""In-process transport: pub/sub fan-out and live sessions.

Stands in for the real-time runtime's publish/subscribe layer and
per-session processes.  Any object with ``broadcast(topic, event, payload)``
can replace PubSub as a SyncedState target.
"""

from synced_state.transport.pubsub import PubSub, Subscription
from synced_state.transport.session import LiveSession

__all__ = [
    "LiveSession",
    "PubSub",
    "Subscription",
]
