import logging
import re
import secrets
import uuid
from pathlib import Path
from typing import Optional

from clurb.core.config import get_settings

logger = logging.getLogger(__name__)


def secure_filename(filename: str) -> str:
    """Безопасное имя файла для хранилища"""
    if not filename:
        return f"document-{secrets.token_hex(8)}.pdf"
    name = Path(filename).name
    cleaned = re.sub(r"[^A-Za-z0-9._-]", "_", name)
    return cleaned or f"document-{secrets.token_hex(8)}.pdf"


class LocalObjectStorage:
    """Объектное хранилище на локальном диске: put(path, bytes) -> url, delete(url)"""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def object_key(self, owner_id: uuid.UUID, filename: str) -> str:
        """Уникальный ключ объекта в папке владельца"""
        return f"{owner_id}/{secrets.token_hex(8)}-{secure_filename(filename)}"

    def put(self, key: str, data: bytes) -> str:
        """Сохранение байтов, возвращает URL объекта"""
        path = self._path_for_key(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Stored {len(data)} bytes at {key}")
        return f"{self.base_url}/{key}"

    def get(self, url: str) -> bytes:
        """Чтение байтов объекта по URL"""
        return self._path_for_url(url).read_bytes()

    def delete(self, url: str) -> None:
        """Удаление объекта по URL (FileNotFoundError, если объекта нет)"""
        self._path_for_url(url).unlink()
        logger.info(f"Deleted stored object {url}")

    def key_for_url(self, url: str) -> Optional[str]:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return None
        return url[len(prefix):]

    def is_owned_by(self, url: str, owner_id: uuid.UUID) -> bool:
        """Лежит ли объект в папке владельца"""
        key = self.key_for_url(url)
        if key is None:
            return False
        try:
            path = self._path_for_key(key)
        except ValueError:
            return False
        return self.root.resolve() / str(owner_id) in path.parents

    def _path_for_url(self, url: str) -> Path:
        key = self.key_for_url(url)
        if key is None:
            raise ValueError(f"URL is not served by this storage: {url}")
        return self._path_for_key(key)

    def _path_for_key(self, key: str) -> Path:
        root = self.root.resolve()
        path = (root / key).resolve()
        if root not in path.parents:
            raise ValueError(f"Invalid object key: {key}")
        return path


def get_storage() -> LocalObjectStorage:
    """Хранилище, настроенное из параметров приложения"""
    settings = get_settings()
    return LocalObjectStorage(settings.storage_dir, settings.storage_base_url)
