from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from clurb.core.auth import get_current_user, get_token_subject
from clurb.core.db import get_db
from clurb.domains.identity.entities import Profile
from clurb.domains.identity.schemas import ProfileUpsert, ProfileResponse, ProfileSummary
from clurb.domains.identity.services import ProfileService

router = APIRouter(prefix="/users", tags=["users"])


@router.put("/me", response_model=ProfileResponse)
async def upsert_me(
    profile_data: ProfileUpsert,
    user_id: uuid.UUID = Depends(get_token_subject),
    db: AsyncSession = Depends(get_db)
):
    """Создание или обновление профиля текущего пользователя"""
    profile_service = ProfileService(db)

    try:
        profile = await profile_service.upsert_profile(user_id, profile_data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return ProfileResponse.model_validate(profile)


@router.get("/me", response_model=ProfileResponse)
async def get_me(current_user: Profile = Depends(get_current_user)):
    """Профиль текущего пользователя"""
    return ProfileResponse.model_validate(current_user)


@router.get("/search", response_model=List[ProfileSummary])
async def search_users(
    q: str = Query(..., min_length=1, max_length=100),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Поиск читателей для запроса дружбы"""
    profiles = await ProfileService(db).search_profiles(current_user.uuid, q.lstrip("@"))
    return [ProfileSummary.model_validate(profile) for profile in profiles]


@router.get("/{user_uuid}", response_model=ProfileSummary)
async def get_user(
    user_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Получение профиля пользователя (например, отправителя сообщения)"""
    profile = await ProfileService(db).get_profile(user_uuid)

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return ProfileSummary.model_validate(profile)
