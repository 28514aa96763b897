from typing import Optional, List, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, and_
import uuid

from clurb.db.base import as_utc, utcnow
from clurb.db.models.annotation import StickyNote as StickyNoteModel
from clurb.domains.annotations.entities import StickyNote, StickerStyle


class StickyNoteRepository:
    """Репозиторий для работы со стикерами

    Изменение и удаление выполняются с условием на автора прямо в запросе.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, note: StickyNote) -> StickyNote:
        """Создание стикера"""
        db_note = StickyNoteModel(
            uuid=note.uuid,
            document_id=note.document_id,
            author_id=note.author_id,
            page_number=note.page_number,
            content=note.content,
            position_x=note.position_x,
            position_y=note.position_y,
            style=note.style.encode()
        )
        self.session.add(db_note)
        await self.session.commit()
        await self.session.refresh(db_note)
        return self._to_domain(db_note)

    async def get_by_uuid(self, note_uuid: uuid.UUID) -> Optional[StickyNote]:
        """Получение стикера по UUID"""
        result = await self.session.execute(
            select(StickyNoteModel).where(StickyNoteModel.uuid == note_uuid)
        )
        db_note = result.scalar_one_or_none()
        return self._to_domain(db_note) if db_note else None

    async def list_for_page(self, document_id: uuid.UUID, page_number: int) -> List[StickyNote]:
        """Стикеры всех авторов на странице"""
        result = await self.session.execute(
            select(StickyNoteModel)
            .where(
                and_(
                    StickyNoteModel.document_id == document_id,
                    StickyNoteModel.page_number == page_number
                )
            )
            .order_by(StickyNoteModel.created_at.asc())
        )
        return [self._to_domain(n) for n in result.scalars().all()]

    async def list_by_authors(
        self,
        document_ids: Iterable[uuid.UUID],
        author_ids: Iterable[uuid.UUID],
        limit: int = 10
    ) -> List[StickyNote]:
        """Последние стикеры указанных авторов в указанных документах"""
        ids = list(document_ids)
        authors = list(author_ids)
        if not ids or not authors:
            return []
        result = await self.session.execute(
            select(StickyNoteModel)
            .where(
                and_(
                    StickyNoteModel.document_id.in_(ids),
                    StickyNoteModel.author_id.in_(authors)
                )
            )
            .order_by(StickyNoteModel.created_at.desc())
            .limit(limit)
        )
        return [self._to_domain(n) for n in result.scalars().all()]

    async def update_position(
        self,
        note_uuid: uuid.UUID,
        author_id: uuid.UUID,
        position_x: float,
        position_y: float
    ) -> int:
        """Перемещение стикера автором, возвращает число измененных строк"""
        stmt = (
            update(StickyNoteModel)
            .where(
                and_(
                    StickyNoteModel.uuid == note_uuid,
                    StickyNoteModel.author_id == author_id
                )
            )
            .values(position_x=position_x, position_y=position_y, updated_at=utcnow())
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount

    async def delete(self, note_uuid: uuid.UUID, author_id: uuid.UUID) -> int:
        """Удаление стикера автором, возвращает число удаленных строк"""
        stmt = delete(StickyNoteModel).where(
            and_(
                StickyNoteModel.uuid == note_uuid,
                StickyNoteModel.author_id == author_id
            )
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount

    def _to_domain(self, db_note: StickyNoteModel) -> StickyNote:
        """Преобразование модели БД в доменную сущность"""
        return StickyNote(
            uuid=db_note.uuid,
            document_id=db_note.document_id,
            author_id=db_note.author_id,
            page_number=db_note.page_number,
            content=db_note.content,
            position_x=db_note.position_x,
            position_y=db_note.position_y,
            style=StickerStyle.parse(db_note.style),
            created_at=as_utc(db_note.created_at),
            updated_at=as_utc(db_note.updated_at)
        )
