import logging
from typing import Optional, List, Dict, Tuple
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from clurb.db.repositories.friendship_repository import FriendshipRepository
from clurb.db.repositories.user_repository import ProfileRepository
from clurb.domains.activity.entities import ActionType
from clurb.domains.activity.services import ActivityService
from clurb.domains.friends.entities import Friendship
from clurb.domains.friends.schemas import FriendRequestCreate
from clurb.domains.identity.entities import Profile

logger = logging.getLogger(__name__)


class FriendshipService:
    """Сервис запросов дружбы"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.friendship_repository = FriendshipRepository(session)
        self.profile_repository = ProfileRepository(session)
        self.activity_service = ActivityService(session)

    async def send_request(self, user_id: uuid.UUID, request_data: FriendRequestCreate) -> Friendship:
        """Отправка запроса дружбы

        Встречный ожидающий запрос принимается, отклоненный открывается заново.
        """
        friend = await self._resolve_friend(request_data)
        if friend.uuid == user_id:
            raise ValueError("You cannot add yourself as a friend")

        existing = await self.friendship_repository.get_between(user_id, friend.uuid)
        if existing is None:
            friendship = await self.friendship_repository.create(Friendship.request(user_id, friend.uuid))
            logger.info(f"Friend request {friendship.uuid} from {user_id} to {friend.uuid}")
            return friendship

        if existing.is_accepted:
            raise ValueError("You are already friends")
        if existing.is_pending:
            if existing.user_id == user_id:
                raise ValueError("Friend request already sent")
            return await self._accept(existing, user_id)

        existing.reopen(user_id)
        return await self.friendship_repository.update(existing)

    async def _resolve_friend(self, request_data: FriendRequestCreate) -> Profile:
        if request_data.friend_id:
            profile = await self.profile_repository.get_by_uuid(request_data.friend_id)
        elif request_data.friend_username:
            profile = await self.profile_repository.get_by_username(request_data.friend_username)
        else:
            raise ValueError("Friend id or username is required")

        if profile is None:
            raise ValueError("User not found")
        return profile

    async def respond(
        self,
        friendship_uuid: uuid.UUID,
        user_id: uuid.UUID,
        action: str
    ) -> Optional[Friendship]:
        """Принятие или отклонение запроса (только адресат)"""
        friendship = await self.friendship_repository.get_by_uuid(friendship_uuid)
        if friendship is None or friendship.friend_id != user_id:
            return None

        if action == "accept":
            return await self._accept(friendship, user_id)

        friendship.decline()
        return await self.friendship_repository.update(friendship)

    async def _accept(self, friendship: Friendship, user_id: uuid.UUID) -> Friendship:
        friendship.accept()
        updated = await self.friendship_repository.update(friendship)
        await self.activity_service.log(
            user_id,
            ActionType.FRIEND_ADDED,
            metadata={"friend_id": str(friendship.other(user_id))}
        )
        return updated

    async def list_friends(self, user_id: uuid.UUID) -> List[Tuple[Friendship, Optional[Profile]]]:
        """Подтвержденные друзья с профилями"""
        friendships = await self.friendship_repository.list_accepted(user_id)
        return await self._with_profiles(friendships, user_id)

    async def list_requests(self, user_id: uuid.UUID) -> Dict[str, List[Tuple[Friendship, Optional[Profile]]]]:
        """Входящие и исходящие ожидающие запросы"""
        received = await self.friendship_repository.list_pending_received(user_id)
        sent = await self.friendship_repository.list_pending_sent(user_id)
        return {
            "received": await self._with_profiles(received, user_id),
            "sent": await self._with_profiles(sent, user_id)
        }

    async def _with_profiles(
        self,
        friendships: List[Friendship],
        user_id: uuid.UUID
    ) -> List[Tuple[Friendship, Optional[Profile]]]:
        profiles = {
            p.uuid: p for p in await self.profile_repository.get_many(f.other(user_id) for f in friendships)
        }
        return [(f, profiles.get(f.other(user_id))) for f in friendships]

