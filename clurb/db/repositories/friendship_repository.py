from typing import Optional, List, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_
from sqlalchemy.exc import IntegrityError
import uuid

from clurb.db.base import as_utc
from clurb.db.models.friendship import Friendship as FriendshipModel
from clurb.domains.friends.entities import Friendship, FriendshipStatus


class FriendshipRepository:
    """Репозиторий дружбы между читателями"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, friendship: Friendship) -> Friendship:
        """Создание запроса дружбы"""
        db_friendship = FriendshipModel(
            uuid=friendship.uuid,
            user_id=friendship.user_id,
            friend_id=friendship.friend_id,
            status=friendship.status.value
        )
        self.session.add(db_friendship)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValueError("Friend request already sent")

        await self.session.refresh(db_friendship)
        return self._to_domain(db_friendship)

    async def get_by_uuid(self, friendship_uuid: uuid.UUID) -> Optional[Friendship]:
        """Получение дружбы по UUID"""
        result = await self.session.execute(
            select(FriendshipModel).where(FriendshipModel.uuid == friendship_uuid)
        )
        db_friendship = result.scalar_one_or_none()
        return self._to_domain(db_friendship) if db_friendship else None

    async def get_between(self, first_id: uuid.UUID, second_id: uuid.UUID) -> Optional[Friendship]:
        """Запись о дружбе двух пользователей в любом направлении"""
        result = await self.session.execute(
            select(FriendshipModel).where(
                or_(
                    and_(FriendshipModel.user_id == first_id, FriendshipModel.friend_id == second_id),
                    and_(FriendshipModel.user_id == second_id, FriendshipModel.friend_id == first_id)
                )
            )
        )
        db_friendship = result.scalars().first()
        return self._to_domain(db_friendship) if db_friendship else None

    async def list_accepted(self, user_id: uuid.UUID) -> List[Friendship]:
        """Подтвержденные дружбы пользователя"""
        result = await self.session.execute(
            select(FriendshipModel)
            .where(
                and_(
                    or_(FriendshipModel.user_id == user_id, FriendshipModel.friend_id == user_id),
                    FriendshipModel.status == FriendshipStatus.ACCEPTED.value
                )
            )
            .order_by(FriendshipModel.created_at.asc())
        )
        return [self._to_domain(f) for f in result.scalars().all()]

    async def list_pending_received(self, user_id: uuid.UUID) -> List[Friendship]:
        """Ожидающие запросы, адресованные пользователю"""
        return await self._list_pending(FriendshipModel.friend_id == user_id)

    async def list_pending_sent(self, user_id: uuid.UUID) -> List[Friendship]:
        """Ожидающие запросы, отправленные пользователем"""
        return await self._list_pending(FriendshipModel.user_id == user_id)

    async def _list_pending(self, condition) -> List[Friendship]:
        result = await self.session.execute(
            select(FriendshipModel)
            .where(and_(condition, FriendshipModel.status == FriendshipStatus.PENDING.value))
            .order_by(FriendshipModel.created_at.desc())
        )
        return [self._to_domain(f) for f in result.scalars().all()]

    async def friend_ids(self, user_id: uuid.UUID) -> Set[uuid.UUID]:
        """UUID подтвержденных друзей пользователя"""
        return {f.other(user_id) for f in await self.list_accepted(user_id)}

    async def update(self, friendship: Friendship) -> Friendship:
        """Обновление направления и статуса дружбы"""
        stmt = (
            update(FriendshipModel)
            .where(FriendshipModel.uuid == friendship.uuid)
            .values(
                user_id=friendship.user_id,
                friend_id=friendship.friend_id,
                status=friendship.status.value,
                responded_at=friendship.responded_at
            )
        )
        await self.session.execute(stmt)
        await self.session.commit()
        return await self.get_by_uuid(friendship.uuid)

    def _to_domain(self, db_friendship: FriendshipModel) -> Friendship:
        """Преобразование модели БД в доменную сущность"""
        return Friendship(
            uuid=db_friendship.uuid,
            user_id=db_friendship.user_id,
            friend_id=db_friendship.friend_id,
            status=FriendshipStatus(db_friendship.status),
            created_at=as_utc(db_friendship.created_at),
            responded_at=as_utc(db_friendship.responded_at)
        )
