import logging
import uuid
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

import httpx

from clurb.client.state import (
    ChatEntry,
    MessageConfirmed,
    MessageFailed,
    MessageInserted,
    MessagePending,
    SessionState,
    apply,
    event_from_payload,
)

logger = logging.getLogger(__name__)


class ReadingSessionClient:
    """Клиент сессии чтения одного документа

    Держит локальное состояние чата и присутствия. Отправка сообщения
    оптимистичная: запись появляется сразу со статусом pending, после ответа
    сервера подтверждается или удаляется. События канала документа
    передаются в handle_event.
    """

    def __init__(self, http: httpx.AsyncClient, document_id, user_id):
        self.http = http
        self.document_id = str(document_id)
        self.user_id = str(user_id)
        self.state = SessionState()
        self._profiles: Dict[str, Optional[Mapping[str, Any]]] = {}

    @property
    def online(self) -> FrozenSet[str]:
        return self.state.online

    @property
    def messages(self) -> Tuple[ChatEntry, ...]:
        return self.state.messages

    def dispatch(self, event) -> SessionState:
        self.state = apply(self.state, event)
        return self.state

    async def fetch_profile(self, user_id: str) -> Optional[Mapping[str, Any]]:
        """Профиль отправителя (кешируется, ошибки не прерывают работу чата)"""
        if user_id in self._profiles:
            return self._profiles[user_id]

        try:
            response = await self.http.get(f"/users/{user_id}")
            response.raise_for_status()
            profile = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Could not load profile {user_id}: {e}")
            return None

        self._profiles[user_id] = profile
        return profile

    async def load_messages(self, limit: Optional[int] = None) -> Tuple[ChatEntry, ...]:
        """Начальная загрузка истории чата"""
        params = {"limit": limit} if limit else None
        response = await self.http.get(f"/documents/{self.document_id}/messages", params=params)
        response.raise_for_status()

        for message in response.json()["messages"]:
            sender = await self.fetch_profile(str(message["sender_id"]))
            self.dispatch(MessageInserted(message=message, sender=sender))

        return self.messages

    async def send_message(self, content: str) -> Optional[ChatEntry]:
        """Оптимистичная отправка: pending -> confirmed или удаление при ошибке"""
        content = content.strip()
        if not content:
            return None

        client_id = f"temp-{uuid.uuid4().hex}"
        self.dispatch(MessagePending(client_id=client_id, sender_id=self.user_id, content=content))

        try:
            response = await self.http.post(
                f"/documents/{self.document_id}/messages",
                json={"content": content, "client_id": client_id},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Message {client_id} was not delivered: {e}")
            self.dispatch(MessageFailed(client_id=client_id))
            return None

        message = response.json()
        self.dispatch(MessageConfirmed(client_id=client_id, message=message))
        return self.state.find(message_id=str(message["uuid"]))

    async def handle_event(self, payload: Mapping[str, Any]) -> SessionState:
        """Событие канала документа (presence_sync, message_inserted)"""
        event = event_from_payload(payload)
        if event is None:
            return self.state

        if isinstance(event, MessageInserted) and event.sender is None:
            sender = await self.fetch_profile(str(event.message["sender_id"]))
            event = MessageInserted(message=event.message, sender=sender)

        return self.dispatch(event)
