from typing import Optional, List, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, and_, or_
from sqlalchemy.exc import IntegrityError
import uuid

from clurb.db.base import as_utc
from clurb.db.models.user import Profile as ProfileModel
from clurb.domains.identity.entities import Profile


class ProfileRepository:
    """Репозиторий для работы с профилями"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, profile: Profile) -> Profile:
        """Создание нового профиля"""
        db_profile = ProfileModel(
            uuid=profile.uuid,
            username=profile.username,
            display_name=profile.display_name,
            avatar_url=profile.avatar_url
        )

        self.session.add(db_profile)
        try:
            await self.session.commit()
            await self.session.refresh(db_profile)
            return self._to_domain(db_profile)
        except IntegrityError:
            await self.session.rollback()
            raise ValueError("Profile with this username already exists")

    async def get_by_uuid(self, profile_uuid: uuid.UUID) -> Optional[Profile]:
        """Получение профиля по UUID"""
        result = await self.session.execute(
            select(ProfileModel).where(ProfileModel.uuid == profile_uuid)
        )
        db_profile = result.scalar_one_or_none()
        return self._to_domain(db_profile) if db_profile else None

    async def get_by_username(self, username: str) -> Optional[Profile]:
        """Получение профиля по username"""
        result = await self.session.execute(
            select(ProfileModel).where(ProfileModel.username == username)
        )
        db_profile = result.scalar_one_or_none()
        return self._to_domain(db_profile) if db_profile else None

    async def search(self, query: str, exclude_id: uuid.UUID, limit: int = 10) -> List[Profile]:
        """Поиск по части username или имени (без учета регистра)"""
        pattern = f"%{query.strip().lower()}%"
        result = await self.session.execute(
            select(ProfileModel)
            .where(
                and_(
                    or_(
                        func.lower(ProfileModel.username).like(pattern),
                        func.lower(ProfileModel.display_name).like(pattern)
                    ),
                    ProfileModel.uuid != exclude_id
                )
            )
            .order_by(ProfileModel.username.asc())
            .limit(limit)
        )
        return [self._to_domain(db_profile) for db_profile in result.scalars().all()]

    async def get_many(self, profile_uuids: Iterable[uuid.UUID]) -> List[Profile]:
        """Получение нескольких профилей"""
        ids = list(profile_uuids)
        if not ids:
            return []
        result = await self.session.execute(
            select(ProfileModel).where(ProfileModel.uuid.in_(ids))
        )
        return [self._to_domain(db_profile) for db_profile in result.scalars().all()]

    async def update(self, profile: Profile) -> Profile:
        """Обновление профиля"""
        stmt = (
            update(ProfileModel)
            .where(ProfileModel.uuid == profile.uuid)
            .values(
                username=profile.username,
                display_name=profile.display_name,
                avatar_url=profile.avatar_url,
                updated_at=profile.updated_at
            )
        )

        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValueError("Profile with this username already exists")

        return await self.get_by_uuid(profile.uuid)

    def _to_domain(self, db_profile: ProfileModel) -> Profile:
        """Преобразование модели БД в доменную сущность"""
        return Profile(
            uuid=db_profile.uuid,
            username=db_profile.username,
            display_name=db_profile.display_name,
            avatar_url=db_profile.avatar_url,
            created_at=as_utc(db_profile.created_at),
            updated_at=as_utc(db_profile.updated_at)
        )
