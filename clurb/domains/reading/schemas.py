from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
import uuid


class ProgressUpdate(BaseModel):
    """Схема для записи текущей страницы"""
    page: int = Field(..., ge=1)


class ProgressResponse(BaseModel):
    """Схема для ответа с прогрессом чтения"""
    document_id: uuid.UUID
    user_id: uuid.UUID
    current_page: int
    last_read_at: datetime

    model_config = ConfigDict(from_attributes=True)

