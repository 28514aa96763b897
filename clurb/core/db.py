import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from clurb.core.config import get_settings

logger = logging.getLogger(__name__)

# Базовый класс для моделей
Base = declarative_base()

_engine = None
_session_factory = None


def get_engine() -> AsyncEngine:
    """Асинхронный движок, создается при первом обращении"""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = make_url(settings.database_url)
        kwargs = {"future": True}
        # SQLite используется в тестах и локально, пул соединений не нужен
        if url.get_backend_name() == "sqlite":
            kwargs["poolclass"] = NullPool
        _engine = create_async_engine(settings.database_url, **kwargs)
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Фабрика сессий"""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(bind=get_engine(), class_=AsyncSession, expire_on_commit=False)
    return _session_factory


def SessionLocal() -> AsyncSession:
    """Открытие новой сессии"""
    return get_session_factory()()


# Функция для dependency injection в FastAPI
async def get_db():
    async with SessionLocal() as session:
        yield session


async def init_db() -> None:
    """Создание таблиц"""
    import clurb.db.models  # noqa: F401  регистрирует модели в metadata

    async with get_engine().begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    logger.info("Database schema is ready")


def reset_database_state() -> None:
    """Сброс движка и фабрики сессий (для тестов)"""
    global _engine, _session_factory
    _engine = None
    _session_factory = None
