import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

DEFAULT_CHAT_TITLE = "New Chat"
TITLE_MAX_LENGTH = 50


class MessageRole(str, Enum):
    """Автор реплики в диалоге с ассистентом"""
    USER = "user"
    ASSISTANT = "assistant"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Highlight:
    """Выделенный на странице фрагмент, о котором спросили ассистента"""

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        page_number: int,
        highlighted_text: str,
        ai_prompt: Optional[str] = None,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.user_id = user_id
        self.page_number = page_number
        self.highlighted_text = highlighted_text
        self.ai_prompt = ai_prompt
        self.created_at = created_at or _now()

    @classmethod
    def record(
        cls,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        page_number: int,
        highlighted_text: str,
        ai_prompt: Optional[str] = None
    ) -> "Highlight":
        return cls(
            uuid=uuid.uuid4(),
            document_id=document_id,
            user_id=user_id,
            page_number=page_number,
            highlighted_text=highlighted_text,
            ai_prompt=ai_prompt
        )


class AssistantChat:
    """Сохраненный диалог с ассистентом

    Диалог может быть привязан к документу и к выделенному фрагменту страницы.
    """

    def __init__(
        self,
        uuid: uuid.UUID,
        user_id: uuid.UUID,
        title: str = DEFAULT_CHAT_TITLE,
        document_id: Optional[uuid.UUID] = None,
        highlighted_text: Optional[str] = None,
        page_number: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.user_id = user_id
        self.title = title
        self.document_id = document_id
        self.highlighted_text = highlighted_text
        self.page_number = page_number
        self.created_at = created_at or _now()
        self.updated_at = updated_at or self.created_at

    def rename(self, title: str) -> None:
        self.title = title
        self.updated_at = _now()

    @classmethod
    def start(
        cls,
        user_id: uuid.UUID,
        title: Optional[str] = None,
        document_id: Optional[uuid.UUID] = None,
        highlighted_text: Optional[str] = None,
        page_number: Optional[int] = None
    ) -> "AssistantChat":
        return cls(
            uuid=uuid.uuid4(),
            user_id=user_id,
            title=title or DEFAULT_CHAT_TITLE,
            document_id=document_id,
            highlighted_text=highlighted_text,
            page_number=page_number
        )

    def __repr__(self) -> str:
        return f"AssistantChat(uuid={self.uuid}, title={self.title})"


class AssistantMessage:
    """Реплика сохраненного диалога"""

    def __init__(
        self,
        uuid: uuid.UUID,
        chat_id: uuid.UUID,
        role: MessageRole,
        content: str,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.chat_id = chat_id
        self.role = role
        self.content = content
        self.created_at = created_at or _now()

    @classmethod
    def compose(cls, chat_id: uuid.UUID, role: MessageRole, content: str) -> "AssistantMessage":
        return cls(uuid=uuid.uuid4(), chat_id=chat_id, role=role, content=content)


def clean_title(raw: str) -> str:
    """Заголовок, сгенерированный моделью: без кавычек по краям, не длиннее 50 символов"""
    title = raw.strip().strip("\"'").strip()
    return title[:TITLE_MAX_LENGTH] or DEFAULT_CHAT_TITLE
