import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any

MAX_MESSAGE_LENGTH = 2000


class ChatMessage:
    """Сообщение чата документа (только добавление)"""

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.sender_id = sender_id
        self.content = content
        self.created_at = created_at or datetime.now(timezone.utc)

    @classmethod
    def compose(cls, document_id: uuid.UUID, sender_id: uuid.UUID, content: str) -> "ChatMessage":
        """Новое сообщение; пустые и слишком длинные сообщения отклоняются"""
        text = content.strip()
        if not text:
            raise ValueError("Message cannot be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message is longer than {MAX_MESSAGE_LENGTH} characters")
        return cls(uuid=uuid.uuid4(), document_id=document_id, sender_id=sender_id, content=text)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": str(self.uuid),
            "document_id": str(self.document_id),
            "sender_id": str(self.sender_id),
            "content": self.content,
            "created_at": self.created_at.isoformat()
        }

    def __repr__(self) -> str:
        return f"ChatMessage(uuid={self.uuid}, sender_id={self.sender_id})"
