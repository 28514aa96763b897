import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Set, Any


class PresenceEntry:
    """Эфемерная запись "пользователь сейчас читает документ" (одна на соединение)"""

    def __init__(self, user_id: uuid.UUID, connection_id: str, joined_at: Optional[datetime] = None):
        self.user_id = user_id
        self.connection_id = connection_id
        self.joined_at = joined_at or datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {"user_id": str(self.user_id), "joined_at": self.joined_at.isoformat()}

    def __repr__(self) -> str:
        return f"PresenceEntry(user_id={self.user_id}, connection_id={self.connection_id})"


class PresenceRoster:
    """Состав присутствующих в одном канале

    Ключ присутствия - пользователь: несколько вкладок считаются одним
    участником, метаданные берутся из последнего подключения, а пользователь
    исчезает только после закрытия последнего соединения. Ничего не
    сохраняется в БД.
    """

    def __init__(self):
        self._entries: Dict[uuid.UUID, Dict[str, PresenceEntry]] = {}
        self._owners: Dict[str, uuid.UUID] = {}

    def join(self, user_id: uuid.UUID, connection_id: str, joined_at: Optional[datetime] = None) -> PresenceEntry:
        """Регистрация соединения пользователя"""
        self.leave(connection_id)
        entry = PresenceEntry(user_id, connection_id, joined_at)
        self._entries.setdefault(user_id, {})[connection_id] = entry
        self._owners[connection_id] = user_id
        return entry

    def leave(self, connection_id: str) -> Optional[uuid.UUID]:
        """Удаление соединения; возвращает пользователя, если это было его последнее соединение"""
        user_id = self._owners.pop(connection_id, None)
        if user_id is None:
            return None
        connections = self._entries.get(user_id, {})
        connections.pop(connection_id, None)
        if connections:
            return None
        self._entries.pop(user_id, None)
        return user_id

    def is_tracked(self, connection_id: str) -> bool:
        return connection_id in self._owners

    def online(self) -> Set[uuid.UUID]:
        """Множество пользователей онлайн"""
        return set(self._entries.keys())

    def latest(self, user_id: uuid.UUID) -> Optional[PresenceEntry]:
        """Самое свежее подключение пользователя"""
        connections = self._entries.get(user_id)
        if not connections:
            return None
        return list(connections.values())[-1]

    def members(self) -> Dict[str, Dict[str, Any]]:
        """Полный состав для события presence_sync"""
        members = {}
        for user_id, connections in self._entries.items():
            entry = self.latest(user_id)
            members[str(user_id)] = {**entry.to_dict(), "connections": len(connections)}
        return members

    def __len__(self) -> int:
        return len(self._entries)
