from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from clurb.api.router import api_router
from clurb.core.config import get_settings
from clurb.core.db import init_db
from clurb.core.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = configure_logging()
    await init_db()
    logger.info("Clurb API started")
    yield
    logger.info("Clurb API stopped")


def create_app() -> FastAPI:
    """Сборка приложения (uvicorn clurb.main:create_app --factory)"""
    settings = get_settings()

    app = FastAPI(
        title="Clurb",
        description="Совместное чтение документов: прогресс, присутствие, стикеры и чат",
        version="1.0.0",
        lifespan=lifespan
    )

    # Настройка CORS для работы с frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Загруженные файлы отдаются из локального хранилища
    if settings.storage_base_url.startswith("/"):
        Path(settings.storage_dir).mkdir(parents=True, exist_ok=True)
        app.mount(settings.storage_base_url, StaticFiles(directory=settings.storage_dir), name="files")

    # Подключаем роутеры
    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Корневой эндпоинт"""
        return {
            "message": "Clurb API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health"
        }

    return app
