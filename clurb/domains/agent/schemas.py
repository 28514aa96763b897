from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import List, Literal, Optional
import uuid
from datetime import datetime

from clurb.domains.agent.entities import MessageRole


class AgentMessage(BaseModel):
    """Реплика диалога с агентом"""
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=20000)


class AgentRequest(BaseModel):
    """История диалога, последняя реплика - от пользователя"""
    messages: List[AgentMessage] = Field(..., min_length=1, max_length=100)


class HighlightRequest(AgentRequest):
    """Вопрос о выделенном на странице фрагменте"""
    document_id: uuid.UUID
    page_number: int = Field(..., ge=1)
    selected_text: Optional[str] = Field(None, max_length=20000)
    chat_id: Optional[uuid.UUID] = None


class AssistantChatCreate(BaseModel):
    """Схема для создания диалога с ассистентом"""
    title: Optional[str] = Field(None, max_length=255)
    document_id: Optional[uuid.UUID] = None
    highlighted_text: Optional[str] = Field(None, max_length=20000)
    page_number: Optional[int] = Field(None, ge=1)


class AssistantChatUpdate(BaseModel):
    """Переименование диалога"""
    title: str = Field(..., min_length=1, max_length=255)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()


class AssistantMessageCreate(BaseModel):
    """Схема для сохранения реплики"""
    role: MessageRole
    content: str = Field(..., min_length=1, max_length=20000)


class AssistantMessageResponse(BaseModel):
    uuid: uuid.UUID
    chat_id: uuid.UUID
    role: MessageRole
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssistantChatResponse(BaseModel):
    """Схема для ответа с данными диалога"""
    uuid: uuid.UUID
    title: str
    document_id: Optional[uuid.UUID] = None
    highlighted_text: Optional[str] = None
    page_number: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssistantChatDetail(AssistantChatResponse):
    """Диалог вместе с репликами"""
    messages: List[AssistantMessageResponse] = []
