import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clurb.db.repositories.activity_repository import ActivityRepository
from clurb.domains.activity.entities import ActivityEvent, ActionType

logger = logging.getLogger(__name__)


class ActivityService:
    """Сервис журнала активности

    Запись в журнал не должна мешать основному действию: ошибки БД
    логируются и подавляются.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.activity_repository = ActivityRepository(session)

    async def log(
        self,
        user_id: uuid.UUID,
        action_type: ActionType,
        document_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[ActivityEvent]:
        """Добавление записи в журнал (best-effort)"""
        event = ActivityEvent.record(user_id, action_type, document_id, metadata)
        try:
            return await self.activity_repository.create(event)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to log {action_type.value} for user {user_id}: {e}")
            await self.session.rollback()
            return None

    async def events_since(
        self,
        user_id: uuid.UUID,
        days: int,
        action_type: Optional[ActionType] = None
    ) -> List[ActivityEvent]:
        """События пользователя за последние N дней"""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        return await self.activity_repository.list_since(user_id, since, action_type)

    async def daily_page_views(self, user_id: uuid.UUID, days: int) -> List[Dict[str, Any]]:
        """Количество просмотренных страниц по дням (для графика), включая дни без активности"""
        events = await self.events_since(user_id, days, ActionType.PAGE_VIEWED)
        counts = Counter(event.created_at.date().isoformat() for event in events)

        today = datetime.now(timezone.utc).date()
        result = []
        for offset in range(days - 1, -1, -1):
            day = (today - timedelta(days=offset)).isoformat()
            result.append({"date": day, "pages": counts.get(day, 0)})
        return result
