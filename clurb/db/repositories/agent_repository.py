from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, and_
from datetime import timedelta
import uuid

from clurb.db.base import as_utc, utcnow
from clurb.db.models.agent import (
    Highlight as HighlightModel,
    AssistantChat as AssistantChatModel,
    AssistantMessage as AssistantMessageModel
)
from clurb.domains.agent.entities import Highlight, AssistantChat, AssistantMessage, MessageRole


class HighlightRepository:
    """Репозиторий выделенных фрагментов"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, highlight: Highlight) -> Highlight:
        """Сохранение выделения"""
        self.session.add(HighlightModel(
            uuid=highlight.uuid,
            document_id=highlight.document_id,
            user_id=highlight.user_id,
            page_number=highlight.page_number,
            highlighted_text=highlight.highlighted_text,
            ai_prompt=highlight.ai_prompt,
            created_at=highlight.created_at,
            updated_at=highlight.created_at
        ))
        await self.session.commit()
        return highlight

    async def list_for_user(self, document_id: uuid.UUID, user_id: uuid.UUID) -> List[Highlight]:
        """Выделения пользователя в документе"""
        result = await self.session.execute(
            select(HighlightModel)
            .where(and_(HighlightModel.document_id == document_id, HighlightModel.user_id == user_id))
            .order_by(HighlightModel.created_at.asc())
        )
        return [self._to_domain(h) for h in result.scalars().all()]

    def _to_domain(self, db_highlight: HighlightModel) -> Highlight:
        """Преобразование модели БД в доменную сущность"""
        return Highlight(
            uuid=db_highlight.uuid,
            document_id=db_highlight.document_id,
            user_id=db_highlight.user_id,
            page_number=db_highlight.page_number,
            highlighted_text=db_highlight.highlighted_text,
            ai_prompt=db_highlight.ai_prompt,
            created_at=as_utc(db_highlight.created_at)
        )


class AssistantChatRepository:
    """Репозиторий сохраненных диалогов с ассистентом

    Все выборки ограничены владельцем диалога.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, chat: AssistantChat) -> AssistantChat:
        """Создание диалога"""
        db_chat = AssistantChatModel(
            uuid=chat.uuid,
            user_id=chat.user_id,
            document_id=chat.document_id,
            title=chat.title,
            highlighted_text=chat.highlighted_text,
            page_number=chat.page_number,
            created_at=chat.created_at,
            updated_at=chat.updated_at
        )
        self.session.add(db_chat)
        await self.session.commit()
        await self.session.refresh(db_chat)
        return self._to_domain(db_chat)

    async def get_for_user(self, chat_uuid: uuid.UUID, user_id: uuid.UUID) -> Optional[AssistantChat]:
        """Диалог, если он принадлежит пользователю"""
        result = await self.session.execute(
            select(AssistantChatModel).where(
                and_(AssistantChatModel.uuid == chat_uuid, AssistantChatModel.user_id == user_id)
            )
        )
        db_chat = result.scalar_one_or_none()
        return self._to_domain(db_chat) if db_chat else None

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        document_id: Optional[uuid.UUID] = None
    ) -> List[AssistantChat]:
        """Диалоги пользователя, недавно обновленные первыми"""
        conditions = [AssistantChatModel.user_id == user_id]
        if document_id is not None:
            conditions.append(AssistantChatModel.document_id == document_id)

        result = await self.session.execute(
            select(AssistantChatModel)
            .where(and_(*conditions))
            .order_by(AssistantChatModel.updated_at.desc())
        )
        return [self._to_domain(c) for c in result.scalars().all()]

    async def update(self, chat: AssistantChat) -> AssistantChat:
        """Обновление заголовка"""
        await self.session.execute(
            update(AssistantChatModel)
            .where(AssistantChatModel.uuid == chat.uuid)
            .values(title=chat.title, updated_at=chat.updated_at)
        )
        await self.session.commit()
        return await self.get_for_user(chat.uuid, chat.user_id)

    async def delete(self, chat_uuid: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Удаление диалога вместе с репликами"""
        chat = await self.get_for_user(chat_uuid, user_id)
        if chat is None:
            return False

        await self.session.execute(
            delete(AssistantMessageModel).where(AssistantMessageModel.chat_id == chat_uuid)
        )
        await self.session.execute(
            delete(AssistantChatModel).where(AssistantChatModel.uuid == chat_uuid)
        )
        await self.session.commit()
        return True

    async def add_message(self, message: AssistantMessage) -> AssistantMessage:
        """Добавление реплики; диалог поднимается наверх списка

        Время реплик диалога строго возрастает.
        """
        messages = await self.messages(message.chat_id)
        if messages and message.created_at <= messages[-1].created_at:
            message.created_at = messages[-1].created_at + timedelta(microseconds=1)

        self.session.add(AssistantMessageModel(
            uuid=message.uuid,
            chat_id=message.chat_id,
            role=message.role.value,
            content=message.content,
            created_at=message.created_at,
            updated_at=message.created_at
        ))
        await self.session.execute(
            update(AssistantChatModel)
            .where(AssistantChatModel.uuid == message.chat_id)
            .values(updated_at=utcnow())
        )
        await self.session.commit()
        return message

    async def messages(self, chat_uuid: uuid.UUID) -> List[AssistantMessage]:
        """Реплики диалога по возрастанию времени"""
        result = await self.session.execute(
            select(AssistantMessageModel)
            .where(AssistantMessageModel.chat_id == chat_uuid)
            .order_by(AssistantMessageModel.created_at.asc())
        )
        return [self._message_to_domain(m) for m in result.scalars().all()]

    async def first_user_message(self, chat_uuid: uuid.UUID) -> Optional[AssistantMessage]:
        """Первая реплика пользователя (для заголовка)"""
        result = await self.session.execute(
            select(AssistantMessageModel)
            .where(
                and_(
                    AssistantMessageModel.chat_id == chat_uuid,
                    AssistantMessageModel.role == MessageRole.USER.value
                )
            )
            .order_by(AssistantMessageModel.created_at.asc())
            .limit(1)
        )
        db_message = result.scalar_one_or_none()
        return self._message_to_domain(db_message) if db_message else None

    def _to_domain(self, db_chat: AssistantChatModel) -> AssistantChat:
        """Преобразование модели БД в доменную сущность"""
        return AssistantChat(
            uuid=db_chat.uuid,
            user_id=db_chat.user_id,
            title=db_chat.title,
            document_id=db_chat.document_id,
            highlighted_text=db_chat.highlighted_text,
            page_number=db_chat.page_number,
            created_at=as_utc(db_chat.created_at),
            updated_at=as_utc(db_chat.updated_at)
        )

    def _message_to_domain(self, db_message: AssistantMessageModel) -> AssistantMessage:
        return AssistantMessage(
            uuid=db_message.uuid,
            chat_id=db_message.chat_id,
            role=MessageRole(db_message.role),
            content=db_message.content,
            created_at=as_utc(db_message.created_at)
        )
