from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List
import uuid

from clurb.core.auth import get_current_user
from clurb.core.db import get_db
from clurb.domains.documents.entities import Document, Role
from clurb.domains.documents.schemas import (
    DocumentCreate, DocumentUpdate, DocumentResponse, DocumentListResponse,
    PageCountUpdate, MemberResponse, InvitationCreate, InvitationResponse
)
from clurb.domains.documents.services import DocumentService, InvitationService
from clurb.domains.identity.entities import Profile
from clurb.domains.identity.schemas import ProfileSummary
from clurb.domains.reading.services import ReadingProgressService

router = APIRouter(prefix="/documents", tags=["documents"])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Document not found"
    )


def _document_response(document: Document, role: Optional[Role] = None) -> DocumentResponse:
    return DocumentResponse(
        uuid=document.uuid,
        owner_id=document.owner_id,
        title=document.title,
        description=document.description,
        file_url=document.file_url,
        file_type=document.file_type,
        total_pages=document.total_pages,
        created_at=document.created_at,
        updated_at=document.updated_at,
        role=role
    )


@router.post("/upload", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Загрузка файла и создание документа"""
    document_service = DocumentService(db)

    try:
        data = await file.read()
        document = await document_service.upload_document(
            owner_id=current_user.uuid,
            filename=file.filename or "",
            content_type=file.content_type,
            data=data,
            title=title,
            description=description
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    finally:
        await file.close()

    return _document_response(document, Role.OWNER)


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Создание документа для уже сохраненного файла"""
    try:
        document = await DocumentService(db).create_document(document_data, current_user.uuid)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    return _document_response(document, Role.OWNER)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Документы, доступные текущему пользователю"""
    document_service = DocumentService(db)

    offset = (page - 1) * per_page
    documents = await document_service.list_documents(current_user.uuid, limit=per_page, offset=offset)
    total = await document_service.count_documents(current_user.uuid)

    return DocumentListResponse(
        documents=[_document_response(document, role) for document, role in documents],
        total=total
    )


@router.get("/{document_uuid}", response_model=DocumentResponse)
async def get_document(
    document_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Получение документа"""
    access = await DocumentService(db).get_access(document_uuid, current_user.uuid)

    if not access:
        raise _not_found()

    document, membership = access
    return _document_response(document, membership.role)


@router.patch("/{document_uuid}/pages", response_model=DocumentResponse)
async def set_total_pages(
    document_uuid: uuid.UUID,
    page_data: PageCountUpdate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Запись количества страниц, найденного при рендеринге"""
    try:
        document = await DocumentService(db).set_total_pages(
            document_uuid, current_user.uuid, page_data.total_pages
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not document:
        raise _not_found()

    return _document_response(document)


@router.patch("/{document_uuid}", response_model=DocumentResponse)
async def update_document(
    document_uuid: uuid.UUID,
    update_data: DocumentUpdate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Переименование документа"""
    try:
        document = await DocumentService(db).update_document(document_uuid, update_data, current_user.uuid)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )

    if not document:
        raise _not_found()

    return _document_response(document, Role.OWNER)


@router.delete("/{document_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление документа"""
    try:
        success = await DocumentService(db).delete_document(document_uuid, current_user.uuid)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )

    if not success:
        raise _not_found()


@router.get("/{document_uuid}/members", response_model=List[MemberResponse])
async def list_members(
    document_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Участники документа с прогрессом чтения"""
    members = await ReadingProgressService(db).list_member_progress(document_uuid, current_user.uuid)

    if members is None:
        raise _not_found()

    return [
        MemberResponse(
            user_id=member["user_id"],
            role=member["role"],
            joined_at=member["joined_at"],
            profile=ProfileSummary.model_validate(member["profile"]) if member["profile"] else None,
            current_page=member["current_page"],
            last_read_at=member["last_read_at"]
        )
        for member in members
    ]


@router.delete("/{document_uuid}/members/{user_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    document_uuid: uuid.UUID,
    user_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Исключение участника"""
    try:
        removed = await DocumentService(db).remove_member(document_uuid, current_user.uuid, user_uuid)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if removed is None:
        raise _not_found()
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found"
        )


@router.post("/{document_uuid}/invitations", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def invite(
    document_uuid: uuid.UUID,
    invitation_data: InvitationCreate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Приглашение читателя к документу"""
    try:
        invitation = await InvitationService(db).invite(document_uuid, current_user.uuid, invitation_data)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not invitation:
        raise _not_found()

    return InvitationResponse.model_validate(invitation)
