from clurb.domains.agent.entities import AssistantChat, AssistantMessage, Highlight, MessageRole
from clurb.domains.agent.schemas import (
    AgentMessage, AgentRequest, HighlightRequest,
    AssistantChatCreate, AssistantChatUpdate, AssistantMessageCreate,
    AssistantMessageResponse, AssistantChatResponse, AssistantChatDetail
)

__all__ = [
    "AssistantChat", "AssistantMessage", "Highlight", "MessageRole",
    "AgentMessage", "AgentRequest", "HighlightRequest",
    "AssistantChatCreate", "AssistantChatUpdate", "AssistantMessageCreate",
    "AssistantMessageResponse", "AssistantChatResponse", "AssistantChatDetail"
]
