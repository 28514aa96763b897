import logging
from typing import List, Optional
import uuid

import anthropic
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from clurb.core.auth import get_current_user
from clurb.core.config import get_settings
from clurb.core.db import SessionLocal, get_db
from clurb.domains.agent.schemas import (
    AgentRequest, HighlightRequest, AssistantChatCreate, AssistantChatUpdate,
    AssistantMessageCreate, AssistantMessageResponse, AssistantChatResponse, AssistantChatDetail
)
from clurb.domains.agent.services import (
    AgentService, AssistantChatService, HighlightService, highlight_system_prompt
)
from clurb.domains.agent.tools import ReadingTools
from clurb.domains.identity.entities import Profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["agent"])

UNAVAILABLE_REPLY = "\n\nSorry, the assistant is unavailable right now."


def get_agent_client() -> anthropic.AsyncAnthropic:
    """Клиент Anthropic; 503, если ключ API не настроен"""
    settings = get_settings()
    if not settings.anthropic_api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI agent is not configured"
        )
    return anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)


def _chat_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Chat not found"
    )


@router.post("/agent")
async def chat_with_agent(
    request: AgentRequest,
    current_user: Profile = Depends(get_current_user),
    client: anthropic.AsyncAnthropic = Depends(get_agent_client)
):
    """Диалог с AI-агентом, ответ отдается потоком текста"""
    settings = get_settings()
    messages = [message.model_dump() for message in request.messages]

    async def generate():
        # Ответ живет дольше зависимостей запроса, поэтому сессия своя
        async with SessionLocal() as session:
            tools = ReadingTools(session, current_user.uuid, text_max_chars=settings.agent_text_max_chars)
            agent = AgentService(tools, client=client, settings=settings)
            try:
                async for chunk in agent.stream_reply(messages):
                    yield chunk
            except anthropic.APIError as e:
                logger.error(f"Agent request failed for user {current_user.uuid}: {e}")
                yield UNAVAILABLE_REPLY

    return StreamingResponse(generate(), media_type="text/plain; charset=utf-8")


@router.post("/highlight-ai")
async def ask_about_highlight(
    request: HighlightRequest,
    current_user: Profile = Depends(get_current_user),
    client: anthropic.AsyncAnthropic = Depends(get_agent_client),
    db: AsyncSession = Depends(get_db)
):
    """Вопрос ассистенту о выделенном фрагменте, ответ отдается потоком текста"""
    messages = [message.model_dump() for message in request.messages]

    try:
        highlight = await HighlightService(db).record_query(
            request.document_id,
            current_user.uuid,
            request.page_number,
            request.selected_text,
            prompt=messages[-1]["content"],
            chat_id=request.chat_id
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not highlight:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    agent = AgentService(client=client)
    system = highlight_system_prompt(request.page_number, request.selected_text)

    async def generate():
        try:
            async for chunk in agent.stream_reply(messages, system=system):
                yield chunk
        except anthropic.APIError as e:
            logger.error(f"Highlight request failed for user {current_user.uuid}: {e}")
            yield UNAVAILABLE_REPLY

    return StreamingResponse(generate(), media_type="text/plain; charset=utf-8")


@router.get("/agent/chats", response_model=List[AssistantChatResponse])
async def list_chats(
    document_id: Optional[uuid.UUID] = Query(None),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Сохраненные диалоги пользователя, недавние первыми"""
    chats = await AssistantChatService(db).list_chats(current_user.uuid, document_id)
    return [AssistantChatResponse.model_validate(chat) for chat in chats]


@router.post("/agent/chats", response_model=AssistantChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    chat_data: AssistantChatCreate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Новый диалог с ассистентом"""
    chat = await AssistantChatService(db).create_chat(current_user.uuid, chat_data)

    if not chat:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    return AssistantChatResponse.model_validate(chat)


@router.get("/agent/chats/{chat_uuid}", response_model=AssistantChatDetail)
async def get_chat(
    chat_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Диалог вместе с репликами"""
    chat_service = AssistantChatService(db)
    chat = await chat_service.get_chat(chat_uuid, current_user.uuid)
    if not chat:
        raise _chat_not_found()

    messages = await chat_service.get_messages(chat_uuid, current_user.uuid) or []
    detail = AssistantChatDetail.model_validate(chat)
    detail.messages = [AssistantMessageResponse.model_validate(message) for message in messages]
    return detail


@router.patch("/agent/chats/{chat_uuid}", response_model=AssistantChatResponse)
async def rename_chat(
    chat_uuid: uuid.UUID,
    update_data: AssistantChatUpdate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Переименование диалога"""
    chat = await AssistantChatService(db).rename_chat(chat_uuid, current_user.uuid, update_data.title)
    if not chat:
        raise _chat_not_found()
    return AssistantChatResponse.model_validate(chat)


@router.delete("/agent/chats/{chat_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat(
    chat_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление диалога"""
    if not await AssistantChatService(db).delete_chat(chat_uuid, current_user.uuid):
        raise _chat_not_found()


@router.post(
    "/agent/chats/{chat_uuid}/messages",
    response_model=AssistantMessageResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_chat_message(
    chat_uuid: uuid.UUID,
    message_data: AssistantMessageCreate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Сохранение реплики диалога"""
    message = await AssistantChatService(db).add_message(
        chat_uuid, current_user.uuid, message_data.role, message_data.content
    )
    if not message:
        raise _chat_not_found()
    return AssistantMessageResponse.model_validate(message)


@router.post("/agent/chats/{chat_uuid}/generate-title", response_model=AssistantChatResponse)
async def generate_chat_title(
    chat_uuid: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    client: anthropic.AsyncAnthropic = Depends(get_agent_client),
    db: AsyncSession = Depends(get_db)
):
    """Заголовок диалога, придуманный моделью по первой реплике"""
    try:
        chat = await AssistantChatService(db).generate_title(
            chat_uuid, current_user.uuid, AgentService(client=client)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except anthropic.APIError as e:
        logger.error(f"Title generation failed for chat {chat_uuid}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to generate title"
        )

    if not chat:
        raise _chat_not_found()
    return AssistantChatResponse.model_validate(chat)
