from clurb.client.state import (
    ChatEntry,
    MessageStatus,
    SessionState,
    PresenceSync,
    MessagePending,
    MessageConfirmed,
    MessageFailed,
    MessageInserted,
    apply,
    event_from_payload,
)
from clurb.client.session import ReadingSessionClient

__all__ = [
    "ChatEntry",
    "MessageStatus",
    "SessionState",
    "PresenceSync",
    "MessagePending",
    "MessageConfirmed",
    "MessageFailed",
    "MessageInserted",
    "apply",
    "event_from_payload",
    "ReadingSessionClient",
]
