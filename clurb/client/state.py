"""Состояние сессии чтения на клиенте: присутствие и чат.

Все изменения проходят через чистую функцию apply(state, event) -> state,
события приходят из ответов HTTP и из канала документа. Сообщение живет
по схеме pending -> confirmed | failed (удаляется); confirmed - конечное
состояние. Подтверждение заменяет оптимистичную запись на месте, а эхо из
канала с уже известным id (или client_id) не создает дубликат, в каком бы
порядке ни пришли ответ HTTP и эхо.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union


class MessageStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """ISO-время сервера (в том числе с суффиксом Z) в aware datetime"""
    if value is None or isinstance(value, datetime):
        return value
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ChatEntry:
    """Сообщение в локальном состоянии"""
    sender_id: str
    content: str
    status: MessageStatus
    seq: int
    id: Optional[str] = None
    client_id: Optional[str] = None
    created_at: Optional[datetime] = None
    sender: Optional[Mapping[str, Any]] = None

    @property
    def key(self) -> str:
        return self.id or self.client_id

    @property
    def is_pending(self) -> bool:
        return self.status == MessageStatus.PENDING


@dataclass(frozen=True)
class PresenceSync:
    members: Mapping[str, Any]


@dataclass(frozen=True)
class MessagePending:
    client_id: str
    sender_id: str
    content: str


@dataclass(frozen=True)
class MessageConfirmed:
    client_id: str
    message: Mapping[str, Any]


@dataclass(frozen=True)
class MessageFailed:
    client_id: str


@dataclass(frozen=True)
class MessageInserted:
    message: Mapping[str, Any]
    sender: Optional[Mapping[str, Any]] = None


Event = Union[PresenceSync, MessagePending, MessageConfirmed, MessageFailed, MessageInserted]


@dataclass(frozen=True)
class SessionState:
    online: FrozenSet[str] = frozenset()
    messages: Tuple[ChatEntry, ...] = ()
    next_seq: int = 0

    def find(self, message_id: Optional[str] = None, client_id: Optional[str] = None) -> Optional[ChatEntry]:
        for entry in self.messages:
            if message_id and entry.id == message_id:
                return entry
            if client_id and entry.client_id == client_id:
                return entry
        return None


def _sort_key(entry: ChatEntry):
    # Подтвержденные по времени сервера, ожидающие после них в порядке отправки
    if entry.is_pending:
        return (1, entry.seq)
    return (0, entry.created_at, entry.seq)


def _confirmed(message: Mapping[str, Any], seq: int, client_id: Optional[str], sender=None) -> ChatEntry:
    return ChatEntry(
        id=str(message["uuid"]),
        client_id=client_id,
        sender_id=str(message["sender_id"]),
        content=message["content"],
        created_at=parse_timestamp(message["created_at"]),
        status=MessageStatus.CONFIRMED,
        seq=seq,
        sender=sender,
    )


def _with_messages(state: SessionState, messages, next_seq: Optional[int] = None) -> SessionState:
    return replace(
        state,
        messages=tuple(sorted(messages, key=_sort_key)),
        next_seq=state.next_seq if next_seq is None else next_seq,
    )


def _settle(state: SessionState, message: Mapping[str, Any], client_id: Optional[str], sender=None) -> SessionState:
    """Подтвержденное сообщение с сервера: замена pending или добавление без дубликатов"""
    message_id = str(message["uuid"])
    known = state.find(message_id=message_id)
    pending = state.find(client_id=client_id) if client_id else None
    if pending is not None and (not pending.is_pending or pending.sender_id != str(message["sender_id"])):
        pending = None

    if known is not None:
        # Уже подтверждено: убираем только оставшуюся оптимистичную копию
        messages = [
            e for e in state.messages
            if e is not pending
        ]
        if sender and known.sender is None:
            messages = [replace(e, sender=sender) if e is known else e for e in messages]
        return _with_messages(state, messages)

    if pending is not None:
        confirmed = _confirmed(message, pending.seq, client_id, sender or pending.sender)
        return _with_messages(state, [confirmed if e is pending else e for e in state.messages])

    confirmed = _confirmed(message, state.next_seq, client_id, sender)
    return _with_messages(state, [*state.messages, confirmed], state.next_seq + 1)


def apply(state: SessionState, event: Event) -> SessionState:
    """Применение события к состоянию (без побочных эффектов)"""
    if isinstance(event, PresenceSync):
        return replace(state, online=frozenset(str(user_id) for user_id in event.members))

    if isinstance(event, MessagePending):
        if state.find(client_id=event.client_id):
            return state
        entry = ChatEntry(
            client_id=event.client_id,
            sender_id=str(event.sender_id),
            content=event.content,
            status=MessageStatus.PENDING,
            seq=state.next_seq,
        )
        return _with_messages(state, [*state.messages, entry], state.next_seq + 1)

    if isinstance(event, MessageConfirmed):
        return _settle(state, event.message, event.client_id)

    if isinstance(event, MessageFailed):
        pending = state.find(client_id=event.client_id)
        if pending is None or not pending.is_pending:
            return state
        return _with_messages(state, [e for e in state.messages if e is not pending])

    if isinstance(event, MessageInserted):
        return _settle(state, event.message, event.message.get("client_id"), event.sender)

    raise TypeError(f"Unknown event: {event!r}")


def event_from_payload(payload: Mapping[str, Any]) -> Optional[Event]:
    """Событие канала документа в событие состояния (None для остальных типов)"""
    event_type = payload.get("type")
    data: Dict[str, Any] = payload.get("data") or {}
    if event_type == "presence_sync":
        return PresenceSync(members=data.get("members") or {})
    if event_type == "message_inserted":
        return MessageInserted(message=data)
    return None


__all__ = [
    "ChatEntry", "MessageStatus", "SessionState", "Event",
    "PresenceSync", "MessagePending", "MessageConfirmed", "MessageFailed", "MessageInserted",
    "apply", "event_from_payload", "parse_timestamp",
]
