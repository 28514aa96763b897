from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from clurb.core.auth import get_current_user
from clurb.core.db import get_db
from clurb.domains.friends.entities import Friendship
from clurb.domains.friends.schemas import (
    FriendRequestCreate, FriendRequestRespond, FriendshipResponse, FriendRequestsResponse
)
from clurb.domains.friends.services import FriendshipService
from clurb.domains.identity.entities import Profile
from clurb.domains.identity.schemas import ProfileSummary

router = APIRouter(prefix="/friends", tags=["friends"])


def _friendship_response(friendship: Friendship, profile: Optional[Profile] = None) -> FriendshipResponse:
    response = FriendshipResponse.model_validate(friendship)
    if profile:
        response.profile = ProfileSummary.model_validate(profile)
    return response


@router.get("", response_model=List[FriendshipResponse])
async def list_friends(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Друзья текущего пользователя"""
    friends = await FriendshipService(db).list_friends(current_user.uuid)
    return [_friendship_response(friendship, profile) for friendship, profile in friends]


@router.get("/requests", response_model=FriendRequestsResponse)
async def list_friend_requests(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ожидающие запросы дружбы: входящие и исходящие"""
    requests = await FriendshipService(db).list_requests(current_user.uuid)
    return FriendRequestsResponse(
        received=[_friendship_response(f, p) for f, p in requests["received"]],
        sent=[_friendship_response(f, p) for f, p in requests["sent"]]
    )


@router.post("/requests", response_model=FriendshipResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    request_data: FriendRequestCreate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Отправка запроса дружбы"""
    try:
        friendship = await FriendshipService(db).send_request(current_user.uuid, request_data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return _friendship_response(friendship)


@router.patch("/requests/{friendship_uuid}", response_model=FriendshipResponse)
async def respond_to_friend_request(
    friendship_uuid: uuid.UUID,
    response_data: FriendRequestRespond,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Принятие или отклонение запроса дружбы"""
    try:
        friendship = await FriendshipService(db).respond(
            friendship_uuid, current_user.uuid, response_data.action
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not friendship:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Friend request not found"
        )

    return _friendship_response(friendship)
