from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime
import uuid


class ProfileBase(BaseModel):
    """Базовая схема профиля"""
    username: str = Field(..., min_length=3, max_length=100)
    display_name: Optional[str] = Field(None, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=1024)

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        if not v.replace('_', '').replace('-', '').replace('.', '').isalnum():
            raise ValueError('Username must contain only alphanumeric characters, dots, underscores, and hyphens')
        return v


class ProfileUpsert(ProfileBase):
    """Схема для создания или обновления своего профиля"""
    pass


class ProfileResponse(ProfileBase):
    """Схема для ответа с данными профиля"""
    uuid: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileSummary(BaseModel):
    """Краткие данные профиля для чата и списка участников"""
    uuid: uuid.UUID
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
