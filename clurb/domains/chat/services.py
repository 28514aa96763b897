import logging
from typing import Optional, List
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from clurb.core.config import get_settings
from clurb.db.repositories.chat_repository import ChatMessageRepository
from clurb.db.repositories.document_repository import MembershipRepository
from clurb.domains.activity.entities import ActionType
from clurb.domains.activity.services import ActivityService
from clurb.domains.chat.entities import ChatMessage
from clurb.infrastructure.realtime import RealtimeHub, document_channel, hub as default_hub

logger = logging.getLogger(__name__)


class ChatService:
    """Сервис чата документа"""

    def __init__(self, session: AsyncSession, hub: Optional[RealtimeHub] = None):
        self.session = session
        self.hub = hub or default_hub
        self.message_repository = ChatMessageRepository(session)
        self.membership_repository = MembershipRepository(session)
        self.activity_service = ActivityService(session)

    async def send(
        self,
        document_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
        client_id: Optional[str] = None
    ) -> Optional[ChatMessage]:
        """Отправка сообщения и рассылка подписчикам канала документа"""
        if await self.membership_repository.get(document_id, sender_id) is None:
            return None

        message = await self.message_repository.create(
            ChatMessage.compose(document_id, sender_id, content)
        )

        await self.hub.publish(document_channel(document_id), {
            "type": "message_inserted",
            "data": {**message.to_dict(), "client_id": client_id}
        })

        # В журнал попадает только длина сообщения, не текст
        await self.activity_service.log(
            sender_id,
            ActionType.CHAT_MESSAGE_SENT,
            document_id,
            {"message_length": len(message.content)}
        )
        return message

    async def recent(
        self,
        document_id: uuid.UUID,
        viewer_id: uuid.UUID,
        limit: Optional[int] = None
    ) -> Optional[List[ChatMessage]]:
        """Последние сообщения (по умолчанию CHAT_HISTORY_LIMIT) по возрастанию времени"""
        if await self.membership_repository.get(document_id, viewer_id) is None:
            return None
        return await self.message_repository.recent(document_id, limit or get_settings().chat_history_limit)
