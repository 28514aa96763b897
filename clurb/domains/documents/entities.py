import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

PDF_MIME_TYPE = "application/pdf"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Роль участника документа"""
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


class InvitationStatus(str, Enum):
    """Статус приглашения"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Document:
    """Сущность документа домена Documents"""

    def __init__(
        self,
        uuid: uuid.UUID,
        owner_id: uuid.UUID,
        title: str,
        file_url: str,
        file_type: str = PDF_MIME_TYPE,
        total_pages: int = 0,
        description: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.owner_id = owner_id
        self.title = title
        self.file_url = file_url
        self.file_type = file_type
        self.total_pages = total_pages
        self.description = description
        self.created_at = created_at or _now()
        self.updated_at = updated_at or _now()

    @property
    def is_pdf(self) -> bool:
        return self.file_type == PDF_MIME_TYPE

    def rename(self, new_title: str) -> None:
        """Переименование документа"""
        self.title = new_title
        self.updated_at = _now()

    def set_total_pages(self, total_pages: int) -> bool:
        """Запись количества страниц, найденного при рендеринге

        Возвращает False, если значение не изменилось.
        """
        if total_pages < 1:
            raise ValueError("Total pages must be positive")
        if total_pages == self.total_pages:
            return False
        self.total_pages = total_pages
        self.updated_at = _now()
        return True

    def validate_page(self, page_number: int) -> None:
        """Проверка номера страницы (0 страниц означает, что количество еще неизвестно)"""
        if page_number < 1:
            raise ValueError("Page number must be at least 1")
        if self.total_pages > 0 and page_number > self.total_pages:
            raise ValueError(f"Page number exceeds document length ({self.total_pages} pages)")

    @classmethod
    def create_document(
        cls,
        title: str,
        owner_id: uuid.UUID,
        file_url: str,
        file_type: str = PDF_MIME_TYPE,
        total_pages: int = 0,
        description: Optional[str] = None
    ) -> "Document":
        """Создание нового документа"""
        return cls(
            uuid=uuid.uuid4(),
            owner_id=owner_id,
            title=title,
            file_url=file_url,
            file_type=file_type,
            total_pages=total_pages,
            description=description
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Document):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"Document(uuid={self.uuid}, title={self.title}, total_pages={self.total_pages})"


class Membership:
    """Доступ пользователя к документу"""

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        role: Role = Role.VIEWER,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.user_id = user_id
        self.role = role
        self.created_at = created_at or _now()

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER

    @classmethod
    def grant(cls, document_id: uuid.UUID, user_id: uuid.UUID, role: Role = Role.VIEWER) -> "Membership":
        return cls(uuid=uuid.uuid4(), document_id=document_id, user_id=user_id, role=role)

    def __repr__(self) -> str:
        return f"Membership(document_id={self.document_id}, user_id={self.user_id}, role={self.role.value})"


class DocumentAccess:
    """Сущность для проверки прав на документ"""

    def __init__(self, document_id: uuid.UUID, owner_id: uuid.UUID):
        self.document_id = document_id
        self.owner_id = owner_id

    def is_owner(self, user_id: uuid.UUID) -> bool:
        """Проверка является ли пользователь владельцем"""
        return user_id == self.owner_id


class Invitation:
    """Приглашение к совместному чтению"""

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        inviter_id: uuid.UUID,
        invitee_id: uuid.UUID,
        status: InvitationStatus = InvitationStatus.PENDING,
        message: Optional[str] = None,
        created_at: Optional[datetime] = None,
        responded_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.inviter_id = inviter_id
        self.invitee_id = invitee_id
        self.status = status
        self.message = message
        self.created_at = created_at or _now()
        self.responded_at = responded_at

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING

    def accept(self) -> None:
        self._respond(InvitationStatus.ACCEPTED)

    def decline(self) -> None:
        self._respond(InvitationStatus.DECLINED)

    def _respond(self, status: InvitationStatus) -> None:
        if not self.is_pending:
            raise ValueError(f"Invitation already {self.status.value}")
        self.status = status
        self.responded_at = _now()

    def resend(self, inviter_id: uuid.UUID, message: Optional[str] = None) -> None:
        """Повторная отправка: уже отвеченное приглашение снова становится ожидающим"""
        if self.is_pending:
            raise ValueError("Invitation already sent")
        self.inviter_id = inviter_id
        self.status = InvitationStatus.PENDING
        self.message = message
        self.responded_at = None

    @classmethod
    def create_invitation(
        cls,
        document_id: uuid.UUID,
        inviter_id: uuid.UUID,
        invitee_id: uuid.UUID,
        message: Optional[str] = None
    ) -> "Invitation":
        return cls(
            uuid=uuid.uuid4(),
            document_id=document_id,
            inviter_id=inviter_id,
            invitee_id=invitee_id,
            message=message
        )

    def __repr__(self) -> str:
        return f"Invitation(uuid={self.uuid}, document_id={self.document_id}, status={self.status.value})"
