import logging
from typing import Optional, List
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from clurb.db.repositories.user_repository import ProfileRepository
from clurb.domains.identity.entities import Profile
from clurb.domains.identity.schemas import ProfileUpsert

logger = logging.getLogger(__name__)


class ProfileService:
    """Сервис для работы с профилями читателей"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.profile_repository = ProfileRepository(session)

    async def upsert_profile(self, user_id: uuid.UUID, profile_data: ProfileUpsert) -> Profile:
        """Создание или обновление профиля текущего пользователя"""
        existing = await self.profile_repository.get_by_username(profile_data.username)
        if existing and existing.uuid != user_id:
            raise ValueError("Username already taken")

        profile = await self.profile_repository.get_by_uuid(user_id)
        if profile is None:
            profile = Profile(
                uuid=user_id,
                username=profile_data.username,
                display_name=profile_data.display_name,
                avatar_url=profile_data.avatar_url
            )
            logger.info(f"Creating profile {user_id} ({profile.username})")
            return await self.profile_repository.create(profile)

        profile.update_profile(
            username=profile_data.username,
            display_name=profile_data.display_name,
            avatar_url=profile_data.avatar_url
        )
        return await self.profile_repository.update(profile)

    async def get_profile(self, user_id: uuid.UUID) -> Optional[Profile]:
        """Получение профиля по UUID"""
        return await self.profile_repository.get_by_uuid(user_id)

    async def search_profiles(self, user_id: uuid.UUID, query: str, limit: int = 10) -> List[Profile]:
        """Поиск других читателей по username или имени"""
        return await self.profile_repository.search(query, exclude_id=user_id, limit=limit)
