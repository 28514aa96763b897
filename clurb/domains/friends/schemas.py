from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List, Literal
import uuid
from datetime import datetime

from clurb.domains.friends.entities import FriendshipStatus
from clurb.domains.identity.schemas import ProfileSummary


class FriendRequestCreate(BaseModel):
    """Запрос дружбы по UUID или username"""
    friend_id: Optional[uuid.UUID] = None
    friend_username: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator('friend_username')
    @classmethod
    def strip_username(cls, v):
        return v.strip().lstrip('@') if v else v


class FriendRequestRespond(BaseModel):
    """Ответ на запрос дружбы"""
    action: Literal["accept", "decline"]


class FriendshipResponse(BaseModel):
    """Схема для ответа с данными дружбы"""
    uuid: uuid.UUID
    user_id: uuid.UUID
    friend_id: uuid.UUID
    status: FriendshipStatus
    created_at: datetime
    responded_at: Optional[datetime] = None
    profile: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class FriendRequestsResponse(BaseModel):
    """Входящие и исходящие ожидающие запросы"""
    received: List[FriendshipResponse]
    sent: List[FriendshipResponse]
