import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class ProgressDebouncer:
    """Отложенная запись текущей страницы

    Слот хранит только последнюю запланированную страницу. Каждый вызов
    schedule() перезапускает таймер; когда таймер срабатывает, слот
    очищается и write() вызывается один раз. Ошибки записи логируются и не
    повторяются: следующая смена страницы попробует снова.
    """

    def __init__(self, write: Callable[[int], Awaitable[object]], delay: float = 1.0):
        self._write = write
        self.delay = delay
        self._pending: Optional[int] = None
        self._timer: Optional[asyncio.Task] = None

    @property
    def pending(self) -> Optional[int]:
        """Страница, ожидающая записи"""
        return self._pending

    def schedule(self, page: int) -> None:
        """Запланировать запись страницы, сбросив таймер"""
        self._pending = page
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._fire_later())

    def cancel(self) -> None:
        """Отменить таймер; несработавшая запись отбрасывается"""
        self._cancel_timer()
        self._pending = None

    async def flush(self) -> None:
        """Немедленно выполнить ожидающую запись"""
        self._cancel_timer()
        await self._fire()

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _fire_later(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        await self._fire()

    async def _fire(self) -> None:
        page = self._pending
        self._pending = None
        if page is None:
            return
        try:
            await self._write(page)
        except Exception as e:
            logger.warning(f"Progress write for page {page} failed: {e}")
