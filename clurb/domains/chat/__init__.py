from clurb.domains.chat.entities import ChatMessage, MAX_MESSAGE_LENGTH
from clurb.domains.chat.schemas import MessageCreate, MessageResponse, MessageListResponse

__all__ = ["ChatMessage", "MAX_MESSAGE_LENGTH", "MessageCreate", "MessageResponse", "MessageListResponse"]
