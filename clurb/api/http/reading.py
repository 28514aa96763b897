from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from pydantic import BaseModel

from clurb.core.auth import get_current_user
from clurb.core.db import get_db
from clurb.db.repositories.document_repository import MembershipRepository
from clurb.domains.identity.entities import Profile
from clurb.domains.reading.schemas import ProgressUpdate, ProgressResponse
from clurb.domains.reading.services import ReadingProgressService
from clurb.infrastructure.realtime import document_channel, hub

router = APIRouter(prefix="/documents", tags=["reading"])


class PresenceResponse(BaseModel):
    """Пользователи, которые сейчас читают документ"""
    document_id: uuid.UUID
    online: List[uuid.UUID]


@router.put("/{document_uuid}/progress", response_model=ProgressResponse)
async def record_progress(
    document_uuid: uuid.UUID,
    progress_data: ProgressUpdate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Запись текущей страницы (клиент сам откладывает запись на секунду)"""
    try:
        progress = await ReadingProgressService(db).record_page(
            document_uuid, current_user.uuid, progress_data.page
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not progress:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    return ProgressResponse.model_validate(progress)


@router.get("/{document_uuid}/progress", response_model=ProgressResponse)
async def get_progress(
    document_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Прогресс текущего пользователя"""
    progress = await ReadingProgressService(db).get_progress(document_uuid, current_user.uuid)

    if not progress:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No reading progress for this document"
        )

    return ProgressResponse.model_validate(progress)


@router.get("/{document_uuid}/presence", response_model=PresenceResponse)
async def get_presence(
    document_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Кто сейчас читает документ"""
    if await MembershipRepository(db).get(document_uuid, current_user.uuid) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    online = sorted(hub.online(document_channel(document_uuid)), key=str)
    return PresenceResponse(document_id=document_uuid, online=online)
