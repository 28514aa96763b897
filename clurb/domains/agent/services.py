import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional
import uuid

import anthropic
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clurb.core.config import Settings, get_settings
from clurb.db.repositories.agent_repository import AssistantChatRepository, HighlightRepository
from clurb.db.repositories.document_repository import DocumentRepository, MembershipRepository
from clurb.domains.activity.entities import ActionType
from clurb.domains.activity.services import ActivityService
from clurb.domains.agent.entities import (
    AssistantChat, AssistantMessage, Highlight, MessageRole, clean_title
)
from clurb.domains.agent.schemas import AssistantChatCreate
from clurb.domains.agent.tools import TOOL_DEFINITIONS, ReadingTools

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are Clurb AI, a helpful reading assistant for the Clurb social reading app.
You help users understand their reading habits, find information about their books, and interact with their reading community.

IMPORTANT INSTRUCTIONS:
- When asked about a specific book, use get_book_progress with the book title
- When asked "what books do I have", use get_user_books
- When asked about reading activity, use get_reading_activity
- When asked about charts or visualizations, use get_daily_reading_stats
- When asked about friends reading something, use get_friends_reading_book
- When asked who their friends are, use get_user_friends
- When asked to summarize or explain the content of a book, use get_document_text

Be conversational and friendly. Use specific numbers and page counts when available.
Keep responses concise and helpful. Don't explain what tools you're using - just provide the answer."""

HIGHLIGHT_PROMPT = """You are a helpful reading assistant for Clurb, a social reading app. Help users understand and analyze what they're reading.
Be concise but thorough in your explanations. If asked to visualize or create an image description, provide a detailed description that could be used to generate an image."""

HIGHLIGHT_CONTEXT = """

IMPORTANT CONTEXT - The user has highlighted the following passage from page {page_number} of their document:

\"\"\"
{text}
\"\"\"

When answering questions, always consider this highlighted passage as the primary context. If the user asks about "this" or "the text" or "the passage", they are referring to the highlighted text above."""

TITLE_PROMPT = """Generate a very short title (3-5 words max) for a chat conversation that starts with this message. Only output the title, nothing else. No quotes, no punctuation at the end.

User's first message: "{message}"

Title:"""

TITLE_MAX_TOKENS = 20

# Ошибки инструментов возвращаются модели, а не пользователю
TOOL_ERRORS = (ValueError, LookupError, TypeError, OSError, SQLAlchemyError)


def _block_to_dict(block: Any) -> Dict[str, Any]:
    """Блок ответа модели в формате сообщения для следующего запроса"""
    if block.type == "text":
        return {"type": "text", "text": block.text}
    if block.type == "tool_use":
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    raise ValueError(f"Unexpected content block: {block.type}")


def highlight_system_prompt(page_number: int, selected_text: Optional[str]) -> str:
    """Системный промпт ассистента с выделенным фрагментом в качестве контекста"""
    if not selected_text:
        return HIGHLIGHT_PROMPT
    return HIGHLIGHT_PROMPT + HIGHLIGHT_CONTEXT.format(page_number=page_number, text=selected_text)


class AgentService:
    """AI-агент: цикл вызова инструментов с потоковой выдачей текста

    Модель вызывается не более AGENT_MAX_STEPS раз за один ответ. Без
    инструментов (tools=None) агент отвечает одним вызовом модели.
    """

    def __init__(
        self,
        tools: Optional[ReadingTools] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.tools = tools
        if client is None:
            if not self.settings.anthropic_api_key:
                raise ValueError("API key required. Set ANTHROPIC_API_KEY.")
            client = anthropic.AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        self._client = client

    async def stream_reply(
        self,
        messages: List[Dict[str, Any]],
        system: str = SYSTEM_PROMPT
    ) -> AsyncIterator[str]:
        """Ответ агента на историю диалога, текст выдается по мере генерации"""
        conversation = list(messages)
        request: Dict[str, Any] = {
            "model": self.settings.agent_model,
            "max_tokens": self.settings.agent_max_tokens,
            "system": system,
        }
        if self.tools is not None:
            request["tools"] = TOOL_DEFINITIONS

        for step in range(self.settings.agent_max_steps):
            async with self._client.messages.stream(messages=conversation, **request) as stream:
                async for text in stream.text_stream:
                    yield text
                final = await stream.get_final_message()

            if final.stop_reason != "tool_use" or self.tools is None:
                return

            conversation.append({"role": "assistant", "content": [_block_to_dict(b) for b in final.content]})
            conversation.append({"role": "user", "content": await self._run_tools(final.content)})
            logger.info(f"Agent step {step + 1} finished with tool calls")

        logger.warning(f"Agent stopped after {self.settings.agent_max_steps} steps")

    async def _run_tools(self, blocks: List[Any]) -> List[Dict[str, Any]]:
        results = []
        for block in blocks:
            if block.type != "tool_use":
                continue
            try:
                output = await self.tools.execute(block.name, block.input)
                is_error = False
            except TOOL_ERRORS as e:
                logger.warning(f"Agent tool {block.name} failed: {e}")
                output = {"error": str(e)}
                is_error = True
            results.append({
                "type": "tool_result",
                "tool_use_id": block.id,
                "content": json.dumps(output, default=str),
                "is_error": is_error,
            })
        return results

    async def generate_title(self, first_message: str) -> str:
        """Короткий заголовок диалога по первой реплике пользователя"""
        response = await self._client.messages.create(
            model=self.settings.agent_model,
            max_tokens=TITLE_MAX_TOKENS,
            messages=[{"role": "user", "content": TITLE_PROMPT.format(message=first_message)}],
        )
        text = "".join(block.text for block in response.content if block.type == "text")
        return clean_title(text)


class HighlightService:
    """Вопросы ассистенту о выделенном фрагменте страницы"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.document_repository = DocumentRepository(session)
        self.membership_repository = MembershipRepository(session)
        self.highlight_repository = HighlightRepository(session)
        self.activity_service = ActivityService(session)

    async def record_query(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        page_number: int,
        selected_text: Optional[str],
        prompt: str,
        chat_id: Optional[uuid.UUID] = None
    ) -> Optional[Highlight]:
        """Запись выделения и события запроса

        Возвращает None, если пользователь не участник документа. Выделение
        сохраняется только для непустого текста, в журнал попадает лишь его длина.
        """
        if await self.membership_repository.get(document_id, user_id) is None:
            return None
        document = await self.document_repository.get_by_uuid(document_id)
        if document is None:
            return None
        document.validate_page(page_number)

        highlight = Highlight.record(document_id, user_id, page_number, selected_text or "", prompt)
        if selected_text:
            await self.highlight_repository.create(highlight)

        metadata: Dict[str, Any] = {"page": page_number, "text_length": len(selected_text or "")}
        if chat_id:
            metadata["chat_id"] = str(chat_id)
        await self.activity_service.log(user_id, ActionType.AI_HIGHLIGHT_QUERY, document_id, metadata)
        return highlight


class AssistantChatService:
    """Сохраненные диалоги с ассистентом; доступны только владельцу"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.chat_repository = AssistantChatRepository(session)
        self.membership_repository = MembershipRepository(session)

    async def create_chat(self, user_id: uuid.UUID, chat_data: AssistantChatCreate) -> Optional[AssistantChat]:
        """Новый диалог; привязка к документу требует членства"""
        if chat_data.document_id is not None:
            if await self.membership_repository.get(chat_data.document_id, user_id) is None:
                return None

        chat = await self.chat_repository.create(
            AssistantChat.start(
                user_id,
                title=chat_data.title,
                document_id=chat_data.document_id,
                highlighted_text=chat_data.highlighted_text,
                page_number=chat_data.page_number
            )
        )
        logger.info(f"Assistant chat {chat.uuid} created by {user_id}")
        return chat

    async def list_chats(self, user_id: uuid.UUID, document_id: Optional[uuid.UUID] = None) -> List[AssistantChat]:
        return await self.chat_repository.list_for_user(user_id, document_id)

    async def get_chat(self, chat_uuid: uuid.UUID, user_id: uuid.UUID) -> Optional[AssistantChat]:
        return await self.chat_repository.get_for_user(chat_uuid, user_id)

    async def get_messages(self, chat_uuid: uuid.UUID, user_id: uuid.UUID) -> Optional[List[AssistantMessage]]:
        """Реплики диалога; None, если диалог чужой или не существует"""
        if await self.get_chat(chat_uuid, user_id) is None:
            return None
        return await self.chat_repository.messages(chat_uuid)

    async def rename_chat(self, chat_uuid: uuid.UUID, user_id: uuid.UUID, title: str) -> Optional[AssistantChat]:
        chat = await self.get_chat(chat_uuid, user_id)
        if chat is None:
            return None
        chat.rename(title)
        return await self.chat_repository.update(chat)

    async def delete_chat(self, chat_uuid: uuid.UUID, user_id: uuid.UUID) -> bool:
        return await self.chat_repository.delete(chat_uuid, user_id)

    async def add_message(
        self,
        chat_uuid: uuid.UUID,
        user_id: uuid.UUID,
        role: MessageRole,
        content: str
    ) -> Optional[AssistantMessage]:
        """Сохранение реплики в диалоге пользователя"""
        if await self.get_chat(chat_uuid, user_id) is None:
            return None
        return await self.chat_repository.add_message(AssistantMessage.compose(chat_uuid, role, content))

    async def generate_title(
        self,
        chat_uuid: uuid.UUID,
        user_id: uuid.UUID,
        agent: AgentService
    ) -> Optional[AssistantChat]:
        """Заголовок по первой реплике пользователя

        ValueError, если пользователь еще ничего не написал.
        """
        chat = await self.get_chat(chat_uuid, user_id)
        if chat is None:
            return None

        first = await self.chat_repository.first_user_message(chat_uuid)
        if first is None:
            raise ValueError("No messages to generate title from")

        chat.rename(await agent.generate_title(first.content))
        return await self.chat_repository.update(chat)
