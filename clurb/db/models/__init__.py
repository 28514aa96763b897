from clurb.db.models.user import Profile
from clurb.db.models.document import Document, Membership, Invitation
from clurb.db.models.reading import ReadingProgress, ActivityEvent
from clurb.db.models.annotation import StickyNote
from clurb.db.models.chat import ChatMessage
from clurb.db.models.friendship import Friendship
from clurb.db.models.agent import Highlight, AssistantChat, AssistantMessage

__all__ = [
    "Profile",
    "Document",
    "Membership",
    "Invitation",
    "ReadingProgress",
    "ActivityEvent",
    "StickyNote",
    "ChatMessage",
    "Friendship",
    "Highlight",
    "AssistantChat",
    "AssistantMessage"
]
