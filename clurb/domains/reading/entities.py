import uuid
from datetime import datetime, timezone
from typing import Optional


class ReadingProgress:
    """Позиция пользователя в документе (одна запись на пару документ/пользователь)"""

    def __init__(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        current_page: int = 1,
        last_read_at: Optional[datetime] = None,
        uuid: Optional[uuid.UUID] = None
    ):
        if current_page < 1:
            raise ValueError("Page number must be at least 1")
        self.uuid = uuid
        self.document_id = document_id
        self.user_id = user_id
        self.current_page = current_page
        self.last_read_at = last_read_at or datetime.now(timezone.utc)

    def percent_complete(self, total_pages: int) -> int:
        """Процент прочитанного (0, если количество страниц неизвестно)"""
        if total_pages <= 0:
            return 0
        return round(self.current_page / total_pages * 100)

    def __repr__(self) -> str:
        return (
            f"ReadingProgress(document_id={self.document_id}, user_id={self.user_id}, "
            f"current_page={self.current_page})"
        )
