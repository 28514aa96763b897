from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from clurb.core.auth import get_current_user
from clurb.core.db import get_db
from clurb.domains.annotations.entities import StickyNote
from clurb.domains.annotations.schemas import AnnotationCreate, PositionUpdate, AnnotationResponse
from clurb.domains.annotations.services import AnnotationService
from clurb.domains.identity.entities import Profile

router = APIRouter(tags=["annotations"])


def _annotation_response(note: StickyNote) -> AnnotationResponse:
    return AnnotationResponse(
        uuid=note.uuid,
        document_id=note.document_id,
        author_id=note.author_id,
        page_number=note.page_number,
        content=note.content,
        position_x=note.position_x,
        position_y=note.position_y,
        style=note.style.encode(),
        icon=note.style.icon,
        shape=note.style.shape,
        color=note.style.color,
        created_at=note.created_at,
        updated_at=note.updated_at
    )


@router.post(
    "/documents/{document_uuid}/annotations",
    response_model=AnnotationResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_annotation(
    document_uuid: uuid.UUID,
    annotation_data: AnnotationCreate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Создание стикера на странице"""
    try:
        note = await AnnotationService(db).create_annotation(
            document_id=document_uuid,
            author_id=current_user.uuid,
            page_number=annotation_data.page_number,
            content=annotation_data.content,
            position=(annotation_data.position_x, annotation_data.position_y),
            style=annotation_data.style
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not note:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    return _annotation_response(note)


@router.get("/documents/{document_uuid}/annotations", response_model=List[AnnotationResponse])
async def list_annotations(
    document_uuid: uuid.UUID,
    page: int = Query(..., ge=1),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Стикеры страницы"""
    notes = await AnnotationService(db).list_annotations(document_uuid, page, current_user.uuid)

    if notes is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    return [_annotation_response(note) for note in notes]


@router.patch("/annotations/{annotation_uuid}/position", response_model=AnnotationResponse)
async def update_position(
    annotation_uuid: uuid.UUID,
    position_data: PositionUpdate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Перемещение стикера автором"""
    try:
        note = await AnnotationService(db).update_position(
            annotation_uuid,
            current_user.uuid,
            (position_data.position_x, position_data.position_y)
        )
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )

    if not note:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Annotation not found"
        )

    return _annotation_response(note)


@router.delete("/annotations/{annotation_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_annotation(
    annotation_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление стикера автором"""
    try:
        success = await AnnotationService(db).delete_annotation(annotation_uuid, current_user.uuid)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Annotation not found"
        )
