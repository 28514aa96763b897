import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any


class ActionType(str, Enum):
    """Типы действий в журнале активности"""
    FILE_UPLOADED = "file_uploaded"
    FILE_RENAMED = "file_renamed"
    PAGE_VIEWED = "page_viewed"
    STICKY_NOTE_CREATED = "sticky_note_created"
    CHAT_MESSAGE_SENT = "chat_message_sent"
    FILE_SHARED = "file_shared"
    FILE_JOINED = "file_joined"
    AI_HIGHLIGHT_QUERY = "ai_highlight_query"
    FRIEND_ADDED = "friend_added"


class ActivityEvent:
    """Запись журнала активности (только добавление)"""

    def __init__(
        self,
        uuid: uuid.UUID,
        user_id: uuid.UUID,
        action_type: ActionType,
        document_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.user_id = user_id
        self.action_type = action_type
        self.document_id = document_id
        self.metadata = metadata or {}
        self.created_at = created_at or datetime.now(timezone.utc)

    @classmethod
    def record(
        cls,
        user_id: uuid.UUID,
        action_type: ActionType,
        document_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> "ActivityEvent":
        return cls(
            uuid=uuid.uuid4(),
            user_id=user_id,
            action_type=action_type,
            document_id=document_id,
            metadata=metadata
        )

    def __repr__(self) -> str:
        return f"ActivityEvent(user_id={self.user_id}, action_type={self.action_type.value})"
