from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from clurb.core.auth import get_current_user
from clurb.core.db import get_db
from clurb.domains.chat.entities import ChatMessage
from clurb.domains.chat.schemas import MessageCreate, MessageResponse, MessageListResponse
from clurb.domains.chat.services import ChatService
from clurb.domains.identity.entities import Profile

router = APIRouter(prefix="/documents", tags=["chat"])


def _message_response(message: ChatMessage, client_id: Optional[str] = None) -> MessageResponse:
    return MessageResponse(
        uuid=message.uuid,
        document_id=message.document_id,
        sender_id=message.sender_id,
        content=message.content,
        created_at=message.created_at,
        client_id=client_id
    )


@router.post("/{document_uuid}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    document_uuid: uuid.UUID,
    message_data: MessageCreate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Отправка сообщения в чат документа"""
    try:
        message = await ChatService(db).send(
            document_uuid, current_user.uuid, message_data.content, message_data.client_id
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not message:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    return _message_response(message, message_data.client_id)


@router.get("/{document_uuid}/messages", response_model=MessageListResponse)
async def list_messages(
    document_uuid: uuid.UUID,
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Последние сообщения чата"""
    messages = await ChatService(db).recent(document_uuid, current_user.uuid, limit)

    if messages is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    return MessageListResponse(messages=[_message_response(message) for message in messages])
