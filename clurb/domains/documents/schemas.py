from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List, Literal
import uuid
from datetime import datetime

from clurb.domains.documents.entities import Role, InvitationStatus
from clurb.domains.identity.schemas import ProfileSummary


class DocumentBase(BaseModel):
    """Базовая схема документа"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()


class DocumentCreate(DocumentBase):
    """Схема для регистрации уже загруженного файла"""
    file_url: str = Field(..., min_length=1, max_length=1024)
    file_type: str = Field(default="application/pdf", max_length=100)
    total_pages: int = Field(default=0, ge=0)


class DocumentUpdate(BaseModel):
    """Схема для обновления документа"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip() if v else v


class PageCountUpdate(BaseModel):
    """Количество страниц, найденное рендерером"""
    total_pages: int = Field(..., ge=1)


class DocumentResponse(DocumentBase):
    """Схема для ответа с данными документа"""
    uuid: uuid.UUID
    owner_id: uuid.UUID
    file_url: str
    file_type: str
    total_pages: int
    created_at: datetime
    updated_at: datetime
    role: Optional[Role] = None

    model_config = ConfigDict(from_attributes=True)


class DocumentListResponse(BaseModel):
    """Схема для списка документов"""
    documents: List[DocumentResponse]
    total: int


class MemberResponse(BaseModel):
    """Участник документа с профилем и прогрессом чтения"""
    user_id: uuid.UUID
    role: Role
    joined_at: datetime
    profile: Optional[ProfileSummary] = None
    current_page: Optional[int] = None
    last_read_at: Optional[datetime] = None


class InvitationCreate(BaseModel):
    """Схема для приглашения пользователя"""
    invitee_id: Optional[uuid.UUID] = None
    invitee_username: Optional[str] = Field(None, min_length=1, max_length=100)
    message: Optional[str] = Field(None, max_length=1000)

    @field_validator('invitee_username')
    @classmethod
    def strip_username(cls, v):
        return v.strip().lstrip('@') if v else v


class InvitationRespond(BaseModel):
    """Ответ на приглашение"""
    action: Literal["accept", "decline"]


class InvitationResponse(BaseModel):
    """Схема для ответа с данными приглашения"""
    uuid: uuid.UUID
    document_id: uuid.UUID
    inviter_id: uuid.UUID
    invitee_id: uuid.UUID
    status: InvitationStatus
    message: Optional[str] = None
    created_at: datetime
    responded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
