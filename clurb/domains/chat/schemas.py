from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
import uuid
from datetime import datetime

from clurb.domains.chat.entities import MAX_MESSAGE_LENGTH
from clurb.domains.identity.schemas import ProfileSummary


class MessageCreate(BaseModel):
    """Схема для отправки сообщения

    client_id - временный идентификатор оптимистичной вставки у отправителя.
    """
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    client_id: Optional[str] = Field(None, max_length=100)

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Message cannot be empty')
        return v.strip()


class MessageResponse(BaseModel):
    """Схема для ответа с сообщением"""
    uuid: uuid.UUID
    document_id: uuid.UUID
    sender_id: uuid.UUID
    content: str
    created_at: datetime
    client_id: Optional[str] = None
    sender: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class MessageListResponse(BaseModel):
    """Последние сообщения чата в порядке возрастания времени"""
    messages: List[MessageResponse]
