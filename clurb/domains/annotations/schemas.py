from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional
import uuid
from datetime import datetime


class AnnotationCreate(BaseModel):
    """Схема для создания стикера; позиция - доля страницы"""
    page_number: int = Field(..., ge=1)
    content: str = Field(..., min_length=1, max_length=2000)
    position_x: float = Field(..., allow_inf_nan=False)
    position_y: float = Field(..., allow_inf_nan=False)
    style: Optional[str] = Field(None, max_length=100)

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Content cannot be empty')
        return v.strip()


class PositionUpdate(BaseModel):
    """Схема для перемещения стикера; смена страницы не допускается"""
    position_x: float = Field(..., allow_inf_nan=False)
    position_y: float = Field(..., allow_inf_nan=False)

    model_config = ConfigDict(extra="forbid")


class AnnotationResponse(BaseModel):
    """Схема для ответа с данными стикера"""
    uuid: uuid.UUID
    document_id: uuid.UUID
    author_id: uuid.UUID
    page_number: int
    content: str
    position_x: float
    position_y: float
    style: str
    icon: str
    shape: str
    color: str
    created_at: datetime
    updated_at: datetime
