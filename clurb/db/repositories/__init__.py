from clurb.db.repositories.user_repository import ProfileRepository
from clurb.db.repositories.document_repository import (
    DocumentRepository, MembershipRepository, InvitationRepository
)
from clurb.db.repositories.reading_repository import ReadingProgressRepository
from clurb.db.repositories.activity_repository import ActivityRepository
from clurb.db.repositories.annotation_repository import StickyNoteRepository
from clurb.db.repositories.chat_repository import ChatMessageRepository
from clurb.db.repositories.friendship_repository import FriendshipRepository
from clurb.db.repositories.agent_repository import HighlightRepository, AssistantChatRepository

__all__ = [
    "ProfileRepository",
    "DocumentRepository",
    "MembershipRepository",
    "InvitationRepository",
    "ReadingProgressRepository",
    "ActivityRepository",
    "StickyNoteRepository",
    "ChatMessageRepository",
    "FriendshipRepository",
    "HighlightRepository",
    "AssistantChatRepository"
]
