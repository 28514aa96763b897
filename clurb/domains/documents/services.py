import asyncio
import logging
from typing import Optional, List, Tuple
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from clurb.db.repositories.document_repository import (
    DocumentRepository, MembershipRepository, InvitationRepository
)
from clurb.db.repositories.user_repository import ProfileRepository
from clurb.domains.activity.entities import ActionType
from clurb.domains.activity.services import ActivityService
from clurb.domains.documents.entities import (
    Document, DocumentAccess, Invitation, Membership, Role, PDF_MIME_TYPE
)
from clurb.domains.documents.schemas import DocumentCreate, DocumentUpdate, InvitationCreate
from clurb.infrastructure import pdf
from clurb.infrastructure.storage import LocalObjectStorage, get_storage

logger = logging.getLogger(__name__)


class DocumentService:
    """Сервис для работы с документами и их участниками"""

    def __init__(self, session: AsyncSession, storage: Optional[LocalObjectStorage] = None):
        self.session = session
        self.storage = storage or get_storage()
        self.document_repository = DocumentRepository(session)
        self.membership_repository = MembershipRepository(session)
        self.activity_service = ActivityService(session)

    async def upload_document(
        self,
        owner_id: uuid.UUID,
        filename: str,
        content_type: Optional[str],
        data: bytes,
        title: Optional[str] = None,
        description: Optional[str] = None
    ) -> Document:
        """Загрузка файла в хранилище и создание документа"""
        if not data:
            raise ValueError("Uploaded file is empty")

        file_type = content_type or PDF_MIME_TYPE
        total_pages = 0
        if file_type == PDF_MIME_TYPE:
            # PdfExtractionError наследует ValueError
            total_pages = await asyncio.to_thread(pdf.page_count, data)

        key = self.storage.object_key(owner_id, filename)
        file_url = await asyncio.to_thread(self.storage.put, key, data)

        document = Document.create_document(
            title=(title or filename.rsplit(".", 1)[0] or "Untitled").strip(),
            owner_id=owner_id,
            file_url=file_url,
            file_type=file_type,
            total_pages=total_pages,
            description=description
        )
        created = await self._create_with_owner(document)

        await self.activity_service.log(
            owner_id,
            ActionType.FILE_UPLOADED,
            created.uuid,
            {"title": created.title, "file_type": created.file_type}
        )
        return created

    async def create_document(self, document_data: DocumentCreate, owner_id: uuid.UUID) -> Document:
        """Регистрация документа для уже сохраненного файла

        Файл из нашего хранилища можно зарегистрировать только из папки владельца.
        """
        file_url = document_data.file_url
        if self.storage.key_for_url(file_url) is not None and not self.storage.is_owned_by(file_url, owner_id):
            raise PermissionError("Stored file belongs to another user")

        document = Document.create_document(
            title=document_data.title,
            owner_id=owner_id,
            file_url=file_url,
            file_type=document_data.file_type,
            total_pages=document_data.total_pages,
            description=document_data.description
        )
        created = await self._create_with_owner(document)

        await self.activity_service.log(
            owner_id,
            ActionType.FILE_UPLOADED,
            created.uuid,
            {"title": created.title, "file_type": created.file_type}
        )
        return created

    async def _create_with_owner(self, document: Document) -> Document:
        owner_membership = Membership.grant(document.uuid, document.owner_id, Role.OWNER)
        created = await self.document_repository.create(document, owner_membership)
        logger.info(f"Document {created.uuid} created by {created.owner_id}")
        return created

    async def get_access(
        self,
        document_uuid: uuid.UUID,
        user_id: uuid.UUID
    ) -> Optional[Tuple[Document, Membership]]:
        """Документ и членство пользователя; None, если документа нет или он скрыт"""
        membership = await self.membership_repository.get(document_uuid, user_id)
        if membership is None:
            return None
        document = await self.document_repository.get_by_uuid(document_uuid)
        if document is None:
            return None
        return document, membership

    async def get_document(self, document_uuid: uuid.UUID, user_id: uuid.UUID) -> Optional[Document]:
        """Получение документа (только для участников)"""
        access = await self.get_access(document_uuid, user_id)
        return access[0] if access else None

    async def list_documents(
        self,
        user_id: uuid.UUID,
        limit: int = 100,
        offset: int = 0
    ) -> List[Tuple[Document, Role]]:
        """Документы пользователя с его ролью"""
        documents = await self.document_repository.get_for_member(user_id, limit, offset)
        roles = await self.membership_repository.roles_for_user(user_id)
        return [(document, roles.get(document.uuid, Role.VIEWER)) for document in documents]

    async def count_documents(self, user_id: uuid.UUID) -> int:
        return await self.document_repository.count_for_member(user_id)

    async def set_total_pages(
        self,
        document_uuid: uuid.UUID,
        user_id: uuid.UUID,
        total_pages: int
    ) -> Optional[Document]:
        """Запись количества страниц, найденного рендерером"""
        document = await self.get_document(document_uuid, user_id)
        if not document:
            return None

        if not document.set_total_pages(total_pages):
            return document
        return await self.document_repository.update(document)

    async def update_document(
        self,
        document_uuid: uuid.UUID,
        update_data: DocumentUpdate,
        user_id: uuid.UUID
    ) -> Optional[Document]:
        """Обновление документа (только владелец)"""
        document = await self.get_document(document_uuid, user_id)
        if not document:
            return None

        access = DocumentAccess(document_uuid, document.owner_id)
        if not access.is_owner(user_id):
            raise PermissionError("Only the owner can edit this document")

        old_title = document.title
        if update_data.title:
            document.rename(update_data.title)
        if update_data.description is not None:
            document.description = update_data.description

        updated = await self.document_repository.update(document)

        if updated.title != old_title:
            await self.activity_service.log(
                user_id,
                ActionType.FILE_RENAMED,
                document_uuid,
                {"old_title": old_title, "new_title": updated.title}
            )
        return updated

    async def delete_document(self, document_uuid: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Удаление документа вместе с зависимыми данными (только владелец)"""
        document = await self.get_document(document_uuid, user_id)
        if not document:
            return False

        # Только владелец может удалить документ
        if document.owner_id != user_id:
            raise PermissionError("Only the owner can delete this document")

        if self.storage.is_owned_by(document.file_url, document.owner_id):
            try:
                await asyncio.to_thread(self.storage.delete, document.file_url)
            except OSError as e:
                logger.warning(f"Could not delete stored file for document {document_uuid}: {e}")

        deleted = await self.document_repository.delete(document_uuid)
        logger.info(f"Document {document_uuid} deleted by {user_id}")
        return deleted

    async def remove_member(
        self,
        document_uuid: uuid.UUID,
        owner_id: uuid.UUID,
        member_id: uuid.UUID
    ) -> Optional[bool]:
        """Исключение участника (только владелец; членство владельца неизменно)"""
        document = await self.get_document(document_uuid, owner_id)
        if not document:
            return None

        access = DocumentAccess(document_uuid, document.owner_id)
        if not access.is_owner(owner_id):
            raise PermissionError("Only the owner can remove members")
        if access.is_owner(member_id):
            raise ValueError("The owner cannot be removed from the document")

        removed = await self.membership_repository.remove(document_uuid, member_id)
        return removed > 0


class InvitationService:
    """Сервис приглашений к совместному чтению"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.document_repository = DocumentRepository(session)
        self.membership_repository = MembershipRepository(session)
        self.invitation_repository = InvitationRepository(session)
        self.profile_repository = ProfileRepository(session)
        self.activity_service = ActivityService(session)

    async def invite(
        self,
        document_uuid: uuid.UUID,
        inviter_id: uuid.UUID,
        invitation_data: InvitationCreate
    ) -> Optional[Invitation]:
        """Приглашение пользователя к документу (только владелец)"""
        if await self.membership_repository.get(document_uuid, inviter_id) is None:
            return None
        document = await self.document_repository.get_by_uuid(document_uuid)
        if document is None:
            return None
        if document.owner_id != inviter_id:
            raise PermissionError("Only the owner can invite readers")

        invitee_id = await self._resolve_invitee(invitation_data)
        if invitee_id == inviter_id:
            raise ValueError("You cannot invite yourself")
        if await self.membership_repository.get(document_uuid, invitee_id):
            raise ValueError("User is already a member of this document")

        existing = await self.invitation_repository.get_for_invitee(document_uuid, invitee_id)
        if existing:
            # Ожидающее приглашение -> ValueError, отвеченное отправляется повторно
            existing.resend(inviter_id, invitation_data.message)
            invitation = await self.invitation_repository.update(existing)
        else:
            invitation = await self.invitation_repository.create(
                Invitation.create_invitation(document_uuid, inviter_id, invitee_id, invitation_data.message)
            )

        await self.activity_service.log(
            inviter_id,
            ActionType.FILE_SHARED,
            document_uuid,
            {"shared_with": str(invitee_id)}
        )
        return invitation

    async def _resolve_invitee(self, invitation_data: InvitationCreate) -> uuid.UUID:
        if invitation_data.invitee_id:
            profile = await self.profile_repository.get_by_uuid(invitation_data.invitee_id)
        elif invitation_data.invitee_username:
            profile = await self.profile_repository.get_by_username(invitation_data.invitee_username)
        else:
            raise ValueError("Invitee id or username is required")

        if profile is None:
            raise ValueError("Invited user not found")
        return profile.uuid

    async def list_pending(self, user_id: uuid.UUID) -> List[Invitation]:
        """Ожидающие приглашения текущего пользователя"""
        return await self.invitation_repository.list_pending(user_id)

    async def respond(
        self,
        invitation_uuid: uuid.UUID,
        user_id: uuid.UUID,
        action: str
    ) -> Optional[Invitation]:
        """Принятие или отклонение приглашения"""
        invitation = await self.invitation_repository.get_by_uuid(invitation_uuid)
        if invitation is None or invitation.invitee_id != user_id:
            return None

        if action == "accept":
            invitation.accept()
        else:
            invitation.decline()
        updated = await self.invitation_repository.update(invitation)

        if action == "accept":
            # Повторное членство не ошибка
            await self.membership_repository.add(
                Membership.grant(invitation.document_id, user_id, Role.VIEWER)
            )
            await self.activity_service.log(user_id, ActionType.FILE_JOINED, invitation.document_id)

        return updated
