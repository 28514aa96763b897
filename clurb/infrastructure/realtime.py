import logging
import uuid
from typing import Dict, Optional, Set, Any

from fastapi import WebSocket

from clurb.domains.presence.entities import PresenceRoster

logger = logging.getLogger(__name__)


def document_channel(document_id: uuid.UUID) -> str:
    """Имя канала документа"""
    return f"document:{document_id}"


class RealtimeHub:
    """Pub/sub по каналам документов с отслеживанием присутствия

    Каждый join/leave рассылает всем подписчикам канала полный состав
    участников (presence_sync). Соединения, на которые не удалось отправить
    сообщение, удаляются из канала.
    """

    def __init__(self):
        # Хранилище активных соединений: {channel: {connection_id: websocket}}
        self.channels: Dict[str, Dict[str, WebSocket]] = {}
        self.rosters: Dict[str, PresenceRoster] = {}

    def subscribe(self, channel: str, connection_id: str, websocket: WebSocket) -> None:
        """Подписка соединения на канал"""
        self.channels.setdefault(channel, {})[connection_id] = websocket
        logger.info(f"Connection {connection_id} subscribed to {channel}")

    async def track(self, channel: str, connection_id: str, user_id: uuid.UUID) -> None:
        """Объявление присутствия пользователя в канале"""
        roster = self.rosters.setdefault(channel, PresenceRoster())
        roster.join(user_id, connection_id)
        logger.info(f"User {user_id} joined {channel} ({len(roster)} online)")
        await self._sync_presence(channel)

    async def unsubscribe(self, channel: str, connection_id: str) -> None:
        """Отписка соединения; присутствие снимается вместе с ней"""
        connections = self.channels.get(channel)
        if connections is not None:
            connections.pop(connection_id, None)
            if not connections:
                del self.channels[channel]

        roster = self.rosters.get(channel)
        if roster is None or not roster.is_tracked(connection_id):
            return
        left_user = roster.leave(connection_id)
        if left_user is not None:
            logger.info(f"User {left_user} left {channel}")
        if not len(roster):
            del self.rosters[channel]
        await self._sync_presence(channel)

    async def publish(self, channel: str, event: Dict[str, Any], exclude: Optional[str] = None) -> int:
        """Рассылка события подписчикам канала, возвращает число получателей"""
        connections = list(self.channels.get(channel, {}).items())
        delivered = 0
        disconnected = []

        for connection_id, websocket in connections:
            if exclude and connection_id == exclude:
                continue
            try:
                await websocket.send_json(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping connection {connection_id} from {channel}: {e}")
                disconnected.append(connection_id)

        # Удаляем отключенные соединения
        for connection_id in disconnected:
            await self.unsubscribe(channel, connection_id)

        return delivered

    def online(self, channel: str) -> Set[uuid.UUID]:
        """Пользователи онлайн в канале"""
        roster = self.rosters.get(channel)
        return roster.online() if roster else set()

    def members(self, channel: str) -> Dict[str, Dict[str, Any]]:
        roster = self.rosters.get(channel)
        return roster.members() if roster else {}

    async def _sync_presence(self, channel: str) -> None:
        await self.publish(channel, {
            "type": "presence_sync",
            "data": {"members": self.members(channel)}
        })

    def reset(self) -> None:
        """Очистка всех каналов (для тестов)"""
        self.channels.clear()
        self.rosters.clear()


hub = RealtimeHub()
