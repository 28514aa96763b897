from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
import uuid
from datetime import datetime

from clurb.db.base import as_utc
from clurb.db.models.reading import ActivityEvent as ActivityEventModel
from clurb.domains.activity.entities import ActivityEvent, ActionType


class ActivityRepository:
    """Репозиторий журнала активности"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, event: ActivityEvent) -> ActivityEvent:
        """Добавление записи в журнал"""
        db_event = ActivityEventModel(
            uuid=event.uuid,
            user_id=event.user_id,
            document_id=event.document_id,
            action_type=event.action_type.value,
            event_metadata=event.metadata,
            created_at=event.created_at,
            updated_at=event.created_at
        )
        self.session.add(db_event)
        await self.session.commit()
        return event

    async def list_since(
        self,
        user_id: uuid.UUID,
        since: datetime,
        action_type: Optional[ActionType] = None
    ) -> List[ActivityEvent]:
        """События пользователя начиная с указанного момента (новые первыми)"""
        conditions = [
            ActivityEventModel.user_id == user_id,
            ActivityEventModel.created_at >= since
        ]
        if action_type is not None:
            conditions.append(ActivityEventModel.action_type == action_type.value)

        result = await self.session.execute(
            select(ActivityEventModel)
            .where(and_(*conditions))
            .order_by(ActivityEventModel.created_at.desc())
        )
        return [self._to_domain(e) for e in result.scalars().all()]

    async def list_for_document(self, document_id: uuid.UUID, limit: int = 100) -> List[ActivityEvent]:
        """События по документу"""
        result = await self.session.execute(
            select(ActivityEventModel)
            .where(ActivityEventModel.document_id == document_id)
            .order_by(ActivityEventModel.created_at.desc())
            .limit(limit)
        )
        return [self._to_domain(e) for e in result.scalars().all()]

    def _to_domain(self, db_event: ActivityEventModel) -> ActivityEvent:
        """Преобразование модели БД в доменную сущность"""
        return ActivityEvent(
            uuid=db_event.uuid,
            user_id=db_event.user_id,
            action_type=ActionType(db_event.action_type),
            document_id=db_event.document_id,
            metadata=dict(db_event.event_metadata or {}),
            created_at=as_utc(db_event.created_at)
        )
