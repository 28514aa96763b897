import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class FriendshipStatus(str, Enum):
    """Статус дружбы"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Friendship:
    """Дружба двух читателей: user_id отправил запрос, friend_id отвечает на него"""

    def __init__(
        self,
        uuid: uuid.UUID,
        user_id: uuid.UUID,
        friend_id: uuid.UUID,
        status: FriendshipStatus = FriendshipStatus.PENDING,
        created_at: Optional[datetime] = None,
        responded_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.user_id = user_id
        self.friend_id = friend_id
        self.status = status
        self.created_at = created_at or datetime.now(timezone.utc)
        self.responded_at = responded_at

    @property
    def is_pending(self) -> bool:
        return self.status == FriendshipStatus.PENDING

    @property
    def is_accepted(self) -> bool:
        return self.status == FriendshipStatus.ACCEPTED

    def other(self, user_id: uuid.UUID) -> uuid.UUID:
        """Второй участник дружбы"""
        return self.friend_id if user_id == self.user_id else self.user_id

    def accept(self) -> None:
        self._respond(FriendshipStatus.ACCEPTED)

    def decline(self) -> None:
        self._respond(FriendshipStatus.DECLINED)

    def _respond(self, status: FriendshipStatus) -> None:
        if not self.is_pending:
            raise ValueError(f"Friend request already {self.status.value}")
        self.status = status
        self.responded_at = datetime.now(timezone.utc)

    def reopen(self, requester_id: uuid.UUID) -> None:
        """Новый запрос после отказа; отправителем становится requester_id"""
        if self.status != FriendshipStatus.DECLINED:
            raise ValueError("Friend request is still open")
        self.friend_id = self.other(requester_id)
        self.user_id = requester_id
        self.status = FriendshipStatus.PENDING
        self.responded_at = None

    @classmethod
    def request(cls, user_id: uuid.UUID, friend_id: uuid.UUID) -> "Friendship":
        return cls(uuid=uuid.uuid4(), user_id=user_id, friend_id=friend_id)

    def __repr__(self) -> str:
        return f"Friendship(user_id={self.user_id}, friend_id={self.friend_id}, status={self.status.value})"
