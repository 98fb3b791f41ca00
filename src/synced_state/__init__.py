"""synced_state: define a local handler and its sync handler together.

Real-time UIs often update one session, then broadcast so every other
session viewing the same thing resyncs.  synced_state collapses the two
halves into one registration bound to an event name::

    from synced_state import NOREPLY, PubSub, SyncedState

    pubsub = PubSub()
    todos = SyncedState.for_module(__name__, pubsub)

    def sync_add(item, session):
        return NOREPLY, {**session, "items": [*session["items"], item]}

    @todos.sync_state("add", after=sync_add)
    def add(text, session):
        item = {"text": text, "done": False}
        return NOREPLY, {**session, "draft": ""}, item

    todos.handle_event("add", "buy milk", session)   # local + broadcast
    todos.handle_info(message, session)              # in every subscriber

Pieces:

    SyncedState        Topic-bound dispatcher (handle_event / handle_info)
    SyncedEventTable   Event name -> (local, sync) pair
    PubSub             In-process broadcast target
    LiveSession        One subscribed session value
    observability      Dispatch event log

"""

__version__ = "0.1.0"
__all__ = [
    "NOREPLY",
    "LiveSession",
    "PubSub",
    "SyncMessage",
    "SyncedEvent",
    "SyncedEventTable",
    "SyncedState",
    "SyncedStateConfig",
    "SyncedStateError",
    "__version__",
    "load_config",
    "register_synced_event",
]

_LAZY: dict[str, tuple[str, str]] = {
    "NOREPLY": ("synced_state.state", "NOREPLY"),
    "SyncedState": ("synced_state.state", "SyncedState"),
    "SyncedEvent": ("synced_state.registry", "SyncedEvent"),
    "SyncedEventTable": ("synced_state.registry", "SyncedEventTable"),
    "register_synced_event": ("synced_state.registry", "register_synced_event"),
    "SyncMessage": ("synced_state.message", "SyncMessage"),
    "SyncedStateConfig": ("synced_state.config", "SyncedStateConfig"),
    "load_config": ("synced_state.config_loader", "load_config"),
    "SyncedStateError": ("synced_state._errors", "SyncedStateError"),
    "PubSub": ("synced_state.transport.pubsub", "PubSub"),
    "LiveSession": ("synced_state.transport.session", "LiveSession"),
}


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import synced_state`` fast while providing a flat top-level API.
    """
    target = _LAZY.get(name)
    if target is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    module_name, attr = target
    return getattr(importlib.import_module(module_name), attr)
