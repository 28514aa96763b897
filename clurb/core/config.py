from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"

    # Объектное хранилище для загруженных файлов
    storage_dir: str = "storage"
    storage_base_url: str = "/files"

    # Сессия чтения
    progress_debounce_seconds: float = 1.0
    chat_history_limit: int = 100

    # AI-агент
    anthropic_api_key: Optional[str] = None
    agent_model: str = "claude-sonnet-4-20250514"
    agent_max_steps: int = 5
    agent_max_tokens: int = 1024
    agent_text_max_chars: int = 20000

    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Получение настроек приложения (кэшируется)"""
    return Settings()


def reset_settings_cache() -> None:
    """Сброс кэша настроек (используется в тестах)"""
    get_settings.cache_clear()
