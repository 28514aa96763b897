import logging
from typing import Optional, List, Tuple
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from clurb.db.repositories.annotation_repository import StickyNoteRepository
from clurb.db.repositories.document_repository import DocumentRepository, MembershipRepository
from clurb.domains.activity.entities import ActionType
from clurb.domains.activity.services import ActivityService
from clurb.domains.annotations.entities import StickyNote, StickerStyle, clamp_position

logger = logging.getLogger(__name__)


class AnnotationService:
    """Сервис стикеров на страницах документа

    Созданные стикеры не рассылаются в реальном времени: читатели видят их
    при следующей загрузке страницы.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.note_repository = StickyNoteRepository(session)
        self.document_repository = DocumentRepository(session)
        self.membership_repository = MembershipRepository(session)
        self.activity_service = ActivityService(session)

    async def create_annotation(
        self,
        document_id: uuid.UUID,
        author_id: uuid.UUID,
        page_number: int,
        content: str,
        position: Tuple[float, float],
        style: Optional[str] = None
    ) -> Optional[StickyNote]:
        """Создание стикера участником документа"""
        if await self.membership_repository.get(document_id, author_id) is None:
            return None
        document = await self.document_repository.get_by_uuid(document_id)
        if document is None:
            return None
        document.validate_page(page_number)

        note = await self.note_repository.create(
            StickyNote.place(
                document_id=document_id,
                author_id=author_id,
                page_number=page_number,
                content=content,
                position=position,
                style=StickerStyle.parse(style)
            )
        )
        logger.info(f"Sticker {note.uuid} placed on page {page_number} of {document_id}")

        await self.activity_service.log(
            author_id,
            ActionType.STICKY_NOTE_CREATED,
            document_id,
            {"page": page_number, "note_id": str(note.uuid)}
        )
        return note

    async def list_annotations(
        self,
        document_id: uuid.UUID,
        page_number: int,
        viewer_id: uuid.UUID
    ) -> Optional[List[StickyNote]]:
        """Стикеры всех авторов на странице"""
        if await self.membership_repository.get(document_id, viewer_id) is None:
            return None
        return await self.note_repository.list_for_page(document_id, page_number)

    async def update_position(
        self,
        annotation_id: uuid.UUID,
        user_id: uuid.UUID,
        position: Tuple[float, float]
    ) -> Optional[StickyNote]:
        """Перемещение стикера (только автор, страница не меняется)"""
        note = await self._visible_note(annotation_id, user_id)
        if note is None:
            return None

        x, y = clamp_position(*position)
        updated = await self.note_repository.update_position(annotation_id, user_id, x, y)
        if not updated:
            raise PermissionError("Only the author can move this sticker")
        return await self.note_repository.get_by_uuid(annotation_id)

    async def delete_annotation(self, annotation_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Удаление стикера (только автор, без восстановления)"""
        note = await self._visible_note(annotation_id, user_id)
        if note is None:
            return False

        deleted = await self.note_repository.delete(annotation_id, user_id)
        if not deleted:
            raise PermissionError("Only the author can delete this sticker")
        logger.info(f"Sticker {annotation_id} deleted by {user_id}")
        return True

    async def _visible_note(self, annotation_id: uuid.UUID, user_id: uuid.UUID) -> Optional[StickyNote]:
        """Стикер, если пользователь - участник его документа"""
        note = await self.note_repository.get_by_uuid(annotation_id)
        if note is None:
            return None
        if await self.membership_repository.get(note.document_id, user_id) is None:
            return None
        return note
