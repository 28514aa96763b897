from sqlalchemy import Column, String, Text, Integer, ForeignKey, UUID, Index

from clurb.db.base import BaseModel


class Highlight(BaseModel):
    __tablename__ = "highlights"

    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    page_number = Column(Integer, nullable=False)
    highlighted_text = Column(Text, nullable=False)
    ai_prompt = Column(Text, nullable=True)


class AssistantChat(BaseModel):
    __tablename__ = "assistant_chats"

    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(255), nullable=False, default="New Chat")
    highlighted_text = Column(Text, nullable=True)
    page_number = Column(Integer, nullable=True)


class AssistantMessage(BaseModel):
    __tablename__ = "assistant_messages"
    __table_args__ = (Index("ix_assistant_messages_chat_created", "chat_id", "created_at"),)

    chat_id = Column(UUID(as_uuid=True), ForeignKey("assistant_chats.uuid", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
