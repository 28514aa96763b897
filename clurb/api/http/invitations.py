from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from clurb.core.auth import get_current_user
from clurb.core.db import get_db
from clurb.domains.documents.schemas import InvitationRespond, InvitationResponse
from clurb.domains.documents.services import InvitationService
from clurb.domains.identity.entities import Profile

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get("", response_model=List[InvitationResponse])
async def list_invitations(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ожидающие приглашения текущего пользователя"""
    invitations = await InvitationService(db).list_pending(current_user.uuid)
    return [InvitationResponse.model_validate(invitation) for invitation in invitations]


@router.patch("/{invitation_uuid}", response_model=InvitationResponse)
async def respond_to_invitation(
    invitation_uuid: uuid.UUID,
    response_data: InvitationRespond,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Принятие или отклонение приглашения"""
    try:
        invitation = await InvitationService(db).respond(
            invitation_uuid, current_user.uuid, response_data.action
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not invitation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invitation not found"
        )

    return InvitationResponse.model_validate(invitation)
