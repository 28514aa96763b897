from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError
import uuid

from clurb.db.base import as_utc
from clurb.db.models.reading import ReadingProgress as ReadingProgressModel
from clurb.domains.reading.entities import ReadingProgress


class ReadingProgressRepository:
    """Репозиторий для работы с прогрессом чтения"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert(self, progress: ReadingProgress) -> ReadingProgress:
        """Запись прогресса по ключу (документ, пользователь), побеждает последняя запись"""
        # Сначала пытаемся обновить существующую запись
        stmt = (
            update(ReadingProgressModel)
            .where(
                and_(
                    ReadingProgressModel.document_id == progress.document_id,
                    ReadingProgressModel.user_id == progress.user_id
                )
            )
            .values(
                current_page=progress.current_page,
                last_read_at=progress.last_read_at,
                updated_at=progress.last_read_at
            )
        )
        result = await self.session.execute(stmt)

        # Если записи нет, создаем новую
        if result.rowcount == 0:
            self.session.add(ReadingProgressModel(
                document_id=progress.document_id,
                user_id=progress.user_id,
                current_page=progress.current_page,
                last_read_at=progress.last_read_at
            ))
            try:
                await self.session.commit()
            except IntegrityError:
                # Параллельная вставка из другой вкладки
                await self.session.rollback()
                await self.session.execute(stmt)
                await self.session.commit()
        else:
            await self.session.commit()

        return await self.get(progress.document_id, progress.user_id)

    async def get(self, document_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ReadingProgress]:
        """Прогресс пользователя в документе"""
        result = await self.session.execute(
            select(ReadingProgressModel).where(
                and_(
                    ReadingProgressModel.document_id == document_id,
                    ReadingProgressModel.user_id == user_id
                )
            )
        )
        db_progress = result.scalar_one_or_none()
        return self._to_domain(db_progress) if db_progress else None

    async def list_for_document(self, document_id: uuid.UUID) -> List[ReadingProgress]:
        """Прогресс всех читателей документа"""
        result = await self.session.execute(
            select(ReadingProgressModel).where(ReadingProgressModel.document_id == document_id)
        )
        return [self._to_domain(p) for p in result.scalars().all()]

    async def list_for_user(self, user_id: uuid.UUID) -> List[ReadingProgress]:
        """Прогресс пользователя по всем документам, последние прочитанные первыми"""
        result = await self.session.execute(
            select(ReadingProgressModel)
            .where(ReadingProgressModel.user_id == user_id)
            .order_by(ReadingProgressModel.last_read_at.desc())
        )
        return [self._to_domain(p) for p in result.scalars().all()]

    def _to_domain(self, db_progress: ReadingProgressModel) -> ReadingProgress:
        """Преобразование модели БД в доменную сущность"""
        return ReadingProgress(
            uuid=db_progress.uuid,
            document_id=db_progress.document_id,
            user_id=db_progress.user_id,
            current_page=db_progress.current_page,
            last_read_at=as_utc(db_progress.last_read_at)
        )
