import uuid
from datetime import datetime, timezone
from typing import Optional


class Profile:
    """Сущность профиля читателя

    UUID профиля совпадает с subject токена внешнего провайдера идентификации.
    """

    def __init__(
        self,
        uuid: uuid.UUID,
        username: str,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.username = username
        self.display_name = display_name
        self.avatar_url = avatar_url
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    @property
    def name(self) -> str:
        """Имя для отображения"""
        return self.display_name or self.username

    def update_profile(
        self,
        username: Optional[str] = None,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None
    ) -> None:
        """Обновление профиля"""
        if username:
            self.username = username
        if display_name is not None:
            self.display_name = display_name
        if avatar_url is not None:
            self.avatar_url = avatar_url
        self.updated_at = datetime.now(timezone.utc)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Profile):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"Profile(uuid={self.uuid}, username={self.username})"
