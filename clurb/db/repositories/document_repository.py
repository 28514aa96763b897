from typing import Optional, List, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, and_
from sqlalchemy.exc import IntegrityError
import uuid

from clurb.db.base import as_utc
from clurb.db.models.agent import (
    Highlight as HighlightModel,
    AssistantChat as AssistantChatModel,
    AssistantMessage as AssistantMessageModel
)
from clurb.db.models.annotation import StickyNote as StickyNoteModel
from clurb.db.models.chat import ChatMessage as ChatMessageModel
from clurb.db.models.document import (
    Document as DocumentModel,
    Membership as MembershipModel,
    Invitation as InvitationModel
)
from clurb.db.models.reading import ReadingProgress as ReadingProgressModel, ActivityEvent as ActivityEventModel
from clurb.domains.documents.entities import (
    Document, Membership, Invitation, Role, InvitationStatus
)


class DocumentRepository:
    """Репозиторий для работы с документами"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, document: Document, owner_membership: Membership) -> Document:
        """Создание документа вместе с членством владельца"""
        db_document = DocumentModel(
            uuid=document.uuid,
            owner_id=document.owner_id,
            title=document.title,
            description=document.description,
            file_url=document.file_url,
            file_type=document.file_type,
            total_pages=document.total_pages
        )
        db_membership = MembershipModel(
            uuid=owner_membership.uuid,
            document_id=document.uuid,
            user_id=owner_membership.user_id,
            role=owner_membership.role.value
        )

        self.session.add(db_document)
        await self.session.flush()
        self.session.add(db_membership)
        await self.session.commit()
        await self.session.refresh(db_document)
        return self._to_domain(db_document)

    async def get_by_uuid(self, document_uuid: uuid.UUID) -> Optional[Document]:
        """Получение документа по UUID"""
        result = await self.session.execute(
            select(DocumentModel).where(DocumentModel.uuid == document_uuid)
        )
        db_document = result.scalar_one_or_none()
        return self._to_domain(db_document) if db_document else None

    async def get_for_member(self, user_id: uuid.UUID, limit: int = 100, offset: int = 0) -> List[Document]:
        """Документы, в которых пользователь состоит участником"""
        result = await self.session.execute(
            select(DocumentModel)
            .join(MembershipModel, MembershipModel.document_id == DocumentModel.uuid)
            .where(MembershipModel.user_id == user_id)
            .order_by(DocumentModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    async def count_for_member(self, user_id: uuid.UUID) -> int:
        """Подсчет документов пользователя"""
        result = await self.session.execute(
            select(func.count(MembershipModel.uuid)).where(MembershipModel.user_id == user_id)
        )
        return result.scalar() or 0

    async def search_for_member(self, user_id: uuid.UUID, title_query: str, limit: int = 5) -> List[Document]:
        """Поиск документов пользователя по части названия (без учета регистра)"""
        pattern = f"%{title_query.strip().lower()}%"
        result = await self.session.execute(
            select(DocumentModel)
            .join(MembershipModel, MembershipModel.document_id == DocumentModel.uuid)
            .where(
                and_(
                    MembershipModel.user_id == user_id,
                    func.lower(DocumentModel.title).like(pattern)
                )
            )
            .order_by(DocumentModel.created_at.desc())
            .limit(limit)
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    async def get_owned(self, owner_id: uuid.UUID) -> List[Document]:
        """Документы, принадлежащие пользователю"""
        result = await self.session.execute(
            select(DocumentModel)
            .where(DocumentModel.owner_id == owner_id)
            .order_by(DocumentModel.created_at.desc())
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    async def update(self, document: Document) -> Document:
        """Обновление документа"""
        stmt = (
            update(DocumentModel)
            .where(DocumentModel.uuid == document.uuid)
            .values(
                title=document.title,
                description=document.description,
                total_pages=document.total_pages,
                updated_at=document.updated_at
            )
        )

        await self.session.execute(stmt)
        await self.session.commit()

        return await self.get_by_uuid(document.uuid)

    async def delete(self, document_uuid: uuid.UUID) -> bool:
        """Удаление документа и всех зависимых записей"""
        chat_ids = select(AssistantChatModel.uuid).where(AssistantChatModel.document_id == document_uuid)
        await self.session.execute(delete(AssistantMessageModel).where(AssistantMessageModel.chat_id.in_(chat_ids)))

        for model in (
            AssistantChatModel,
            HighlightModel,
            ActivityEventModel,
            ChatMessageModel,
            StickyNoteModel,
            ReadingProgressModel,
            InvitationModel,
            MembershipModel
        ):
            await self.session.execute(delete(model).where(model.document_id == document_uuid))

        result = await self.session.execute(
            delete(DocumentModel).where(DocumentModel.uuid == document_uuid)
        )
        await self.session.commit()
        return result.rowcount > 0

    def _to_domain(self, db_document: DocumentModel) -> Document:
        """Преобразование модели БД в доменную сущность"""
        return Document(
            uuid=db_document.uuid,
            owner_id=db_document.owner_id,
            title=db_document.title,
            description=db_document.description,
            file_url=db_document.file_url,
            file_type=db_document.file_type,
            total_pages=db_document.total_pages or 0,
            created_at=as_utc(db_document.created_at),
            updated_at=as_utc(db_document.updated_at)
        )


class MembershipRepository:
    """Репозиторий для работы с участниками документов"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, membership: Membership) -> Membership:
        """Добавление участника; повторное добавление возвращает существующее членство"""
        existing = await self.get(membership.document_id, membership.user_id)
        if existing:
            return existing

        db_membership = MembershipModel(
            uuid=membership.uuid,
            document_id=membership.document_id,
            user_id=membership.user_id,
            role=membership.role.value
        )
        self.session.add(db_membership)
        try:
            await self.session.commit()
        except IntegrityError:
            # Параллельное принятие того же приглашения
            await self.session.rollback()
            return await self.get(membership.document_id, membership.user_id)

        await self.session.refresh(db_membership)
        return self._to_domain(db_membership)

    async def get(self, document_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Membership]:
        """Членство пользователя в документе"""
        result = await self.session.execute(
            select(MembershipModel).where(
                and_(
                    MembershipModel.document_id == document_id,
                    MembershipModel.user_id == user_id
                )
            )
        )
        db_membership = result.scalar_one_or_none()
        return self._to_domain(db_membership) if db_membership else None

    async def list_for_document(self, document_id: uuid.UUID) -> List[Membership]:
        """Участники документа"""
        result = await self.session.execute(
            select(MembershipModel)
            .where(MembershipModel.document_id == document_id)
            .order_by(MembershipModel.created_at.asc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def document_ids_for_user(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        """UUID документов, доступных пользователю"""
        result = await self.session.execute(
            select(MembershipModel.document_id).where(MembershipModel.user_id == user_id)
        )
        return list(result.scalars().all())

    async def roles_for_user(self, user_id: uuid.UUID) -> Dict[uuid.UUID, Role]:
        """Роль пользователя в каждом из его документов"""
        result = await self.session.execute(
            select(MembershipModel.document_id, MembershipModel.role).where(MembershipModel.user_id == user_id)
        )
        return {document_id: Role(role) for document_id, role in result.all()}

    async def remove(self, document_id: uuid.UUID, user_id: uuid.UUID) -> int:
        """Удаление участника; членство владельца не удаляется"""
        stmt = delete(MembershipModel).where(
            and_(
                MembershipModel.document_id == document_id,
                MembershipModel.user_id == user_id,
                MembershipModel.role != Role.OWNER.value
            )
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount

    def _to_domain(self, db_membership: MembershipModel) -> Membership:
        """Преобразование модели БД в доменную сущность"""
        return Membership(
            uuid=db_membership.uuid,
            document_id=db_membership.document_id,
            user_id=db_membership.user_id,
            role=Role(db_membership.role),
            created_at=as_utc(db_membership.created_at)
        )


class InvitationRepository:
    """Репозиторий для работы с приглашениями"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, invitation: Invitation) -> Invitation:
        """Создание приглашения"""
        db_invitation = InvitationModel(
            uuid=invitation.uuid,
            document_id=invitation.document_id,
            inviter_id=invitation.inviter_id,
            invitee_id=invitation.invitee_id,
            status=invitation.status.value,
            message=invitation.message
        )
        self.session.add(db_invitation)
        await self.session.commit()
        await self.session.refresh(db_invitation)
        return self._to_domain(db_invitation)

    async def get_by_uuid(self, invitation_uuid: uuid.UUID) -> Optional[Invitation]:
        """Получение приглашения по UUID"""
        result = await self.session.execute(
            select(InvitationModel).where(InvitationModel.uuid == invitation_uuid)
        )
        db_invitation = result.scalar_one_or_none()
        return self._to_domain(db_invitation) if db_invitation else None

    async def get_for_invitee(self, document_id: uuid.UUID, invitee_id: uuid.UUID) -> Optional[Invitation]:
        """Последнее приглашение пользователя к документу"""
        result = await self.session.execute(
            select(InvitationModel)
            .where(
                and_(
                    InvitationModel.document_id == document_id,
                    InvitationModel.invitee_id == invitee_id
                )
            )
            .order_by(InvitationModel.created_at.desc())
            .limit(1)
        )
        db_invitation = result.scalar_one_or_none()
        return self._to_domain(db_invitation) if db_invitation else None

    async def list_pending(self, invitee_id: uuid.UUID) -> List[Invitation]:
        """Ожидающие приглашения пользователя"""
        result = await self.session.execute(
            select(InvitationModel)
            .where(
                and_(
                    InvitationModel.invitee_id == invitee_id,
                    InvitationModel.status == InvitationStatus.PENDING.value
                )
            )
            .order_by(InvitationModel.created_at.desc())
        )
        return [self._to_domain(inv) for inv in result.scalars().all()]

    async def update(self, invitation: Invitation) -> Invitation:
        """Обновление статуса приглашения"""
        stmt = (
            update(InvitationModel)
            .where(InvitationModel.uuid == invitation.uuid)
            .values(
                inviter_id=invitation.inviter_id,
                status=invitation.status.value,
                message=invitation.message,
                responded_at=invitation.responded_at
            )
        )
        await self.session.execute(stmt)
        await self.session.commit()
        return await self.get_by_uuid(invitation.uuid)

    def _to_domain(self, db_invitation: InvitationModel) -> Invitation:
        """Преобразование модели БД в доменную сущность"""
        return Invitation(
            uuid=db_invitation.uuid,
            document_id=db_invitation.document_id,
            inviter_id=db_invitation.inviter_id,
            invitee_id=db_invitation.invitee_id,
            status=InvitationStatus(db_invitation.status),
            message=db_invitation.message,
            created_at=as_utc(db_invitation.created_at),
            responded_at=as_utc(db_invitation.responded_at)
        )

