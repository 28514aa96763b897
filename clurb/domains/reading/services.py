import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from clurb.db.repositories.document_repository import DocumentRepository, MembershipRepository
from clurb.db.repositories.reading_repository import ReadingProgressRepository
from clurb.db.repositories.user_repository import ProfileRepository
from clurb.domains.activity.entities import ActionType
from clurb.domains.activity.services import ActivityService
from clurb.domains.reading.entities import ReadingProgress

logger = logging.getLogger(__name__)


class ReadingProgressService:
    """Сервис прогресса чтения"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.progress_repository = ReadingProgressRepository(session)
        self.document_repository = DocumentRepository(session)
        self.membership_repository = MembershipRepository(session)
        self.profile_repository = ProfileRepository(session)
        self.activity_service = ActivityService(session)

    async def record_page(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        page: int
    ) -> Optional[ReadingProgress]:
        """Запись текущей страницы пользователя

        Возвращает None, если пользователь не участник документа.
        """
        if await self.membership_repository.get(document_id, user_id) is None:
            return None
        document = await self.document_repository.get_by_uuid(document_id)
        if document is None:
            return None
        document.validate_page(page)

        progress = await self.progress_repository.upsert(
            ReadingProgress(
                document_id=document_id,
                user_id=user_id,
                current_page=page,
                last_read_at=datetime.now(timezone.utc)
            )
        )
        logger.debug(f"User {user_id} is on page {page} of {document_id}")

        await self.activity_service.log(user_id, ActionType.PAGE_VIEWED, document_id, {"page": page})
        return progress

    async def get_progress(self, document_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ReadingProgress]:
        """Прогресс пользователя в документе"""
        return await self.progress_repository.get(document_id, user_id)

    async def list_member_progress(
        self,
        document_id: uuid.UUID,
        viewer_id: uuid.UUID
    ) -> Optional[List[Dict[str, Any]]]:
        """Участники документа с профилями и прогрессом (боковая панель читалки)"""
        if await self.membership_repository.get(document_id, viewer_id) is None:
            return None

        memberships = await self.membership_repository.list_for_document(document_id)
        progress_by_user = {
            p.user_id: p for p in await self.progress_repository.list_for_document(document_id)
        }
        profiles = {
            p.uuid: p for p in await self.profile_repository.get_many(m.user_id for m in memberships)
        }

        members = []
        for membership in memberships:
            progress = progress_by_user.get(membership.user_id)
            members.append({
                "user_id": membership.user_id,
                "role": membership.role,
                "joined_at": membership.created_at,
                "profile": profiles.get(membership.user_id),
                "current_page": progress.current_page if progress else None,
                "last_read_at": progress.last_read_at if progress else None
            })
        return members
