"""synced_state error hierarchy.

All synced_state errors inherit from SyncedStateError for easy catching.
"""


class SyncedStateError(Exception):
    """Base error for all synced_state operations."""


class ConfigError(SyncedStateError):
    """Invalid or missing configuration."""


class RegistrationError(SyncedStateError):
    """Invalid or duplicate synced event registration."""


class DispatchError(SyncedStateError):
    """Error while dispatching an event or a sync message."""


class UnknownEventError(DispatchError):
    """Local dispatch of an event name that was never registered."""


class UnhandledMessageError(DispatchError):
    """A sync message matched neither the topic nor a registered event."""


class LocalResultError(DispatchError):
    """A local function did not return ``(disposition, session, result)``."""


class SyncResultError(DispatchError):
    """A sync function did not return ``(disposition, session)``."""


class TransportError(SyncedStateError):
    """Misuse of the in-process transport or session runner."""
