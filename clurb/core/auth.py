import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clurb.core.db import get_db
from clurb.core.security import extract_token_from_header, verify_token
from clurb.db.repositories.user_repository import ProfileRepository
from clurb.domains.identity.entities import Profile

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def subject_from_token(token: Optional[str]) -> Optional[uuid.UUID]:
    """Извлечение UUID пользователя (sub) из JWT токена"""
    if not token:
        return None
    payload = verify_token(token)
    if not payload or not payload.get("sub"):
        return None
    try:
        return uuid.UUID(str(payload["sub"]))
    except ValueError:
        return None


async def get_token_subject(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> uuid.UUID:
    """Зависимость: UUID пользователя из валидного токена, профиль не обязателен"""
    user_id = subject_from_token(credentials.credentials if credentials else None)
    if user_id is None:
        raise _unauthorized("Could not validate credentials")
    return user_id


async def get_current_user(
    user_id: uuid.UUID = Depends(get_token_subject),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Зависимость для получения текущего пользователя"""
    profile = await ProfileRepository(db).get_by_uuid(user_id)
    if not profile:
        raise _unauthorized("User not found")
    return profile


def websocket_subject(token: Optional[str], authorization: Optional[str]) -> Optional[uuid.UUID]:
    """Аутентификация WebSocket: токен из query-параметра или заголовка"""
    return subject_from_token(token or extract_token_from_header(authorization or ""))
