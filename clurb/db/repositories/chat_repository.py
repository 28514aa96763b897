from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import timedelta
import uuid

from clurb.db.base import as_utc
from clurb.db.models.chat import ChatMessage as ChatMessageModel
from clurb.domains.chat.entities import ChatMessage


class ChatMessageRepository:
    """Репозиторий сообщений чата"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, message: ChatMessage) -> ChatMessage:
        """Добавление сообщения

        Время сообщений документа строго возрастает: если часы дали то же
        значение, что у последнего сообщения, берется следующая микросекунда.
        """
        latest = await self.latest_created_at(message.document_id)
        if latest is not None and message.created_at <= latest:
            message.created_at = latest + timedelta(microseconds=1)

        db_message = ChatMessageModel(
            uuid=message.uuid,
            document_id=message.document_id,
            sender_id=message.sender_id,
            content=message.content,
            created_at=message.created_at,
            updated_at=message.created_at
        )
        self.session.add(db_message)
        await self.session.commit()
        return message

    async def latest_created_at(self, document_id: uuid.UUID):
        result = await self.session.execute(
            select(func.max(ChatMessageModel.created_at))
            .where(ChatMessageModel.document_id == document_id)
        )
        return as_utc(result.scalar())

    async def get_by_uuid(self, message_uuid: uuid.UUID) -> Optional[ChatMessage]:
        """Получение сообщения по UUID"""
        result = await self.session.execute(
            select(ChatMessageModel).where(ChatMessageModel.uuid == message_uuid)
        )
        db_message = result.scalar_one_or_none()
        return self._to_domain(db_message) if db_message else None

    async def recent(self, document_id: uuid.UUID, limit: int = 100) -> List[ChatMessage]:
        """Последние N сообщений в порядке возрастания времени"""
        result = await self.session.execute(
            select(ChatMessageModel)
            .where(ChatMessageModel.document_id == document_id)
            .order_by(ChatMessageModel.created_at.desc())
            .limit(limit)
        )
        messages = [self._to_domain(m) for m in result.scalars().all()]
        messages.reverse()
        return messages

    def _to_domain(self, db_message: ChatMessageModel) -> ChatMessage:
        """Преобразование модели БД в доменную сущность"""
        return ChatMessage(
            uuid=db_message.uuid,
            document_id=db_message.document_id,
            sender_id=db_message.sender_id,
            content=db_message.content,
            created_at=as_utc(db_message.created_at)
        )
