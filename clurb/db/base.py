import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, UUID

from clurb.core.db import Base


def utcnow() -> datetime:
    """Текущее время в UTC"""
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """Абстрактная модель с UUID-ключом и временными метками"""
    __abstract__ = True

    uuid = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite возвращает naive datetime, приводим к UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
