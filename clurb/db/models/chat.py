from sqlalchemy import Column, Text, ForeignKey, UUID, Index

from clurb.db.base import BaseModel


class ChatMessage(BaseModel):
    __tablename__ = "chat_messages"
    __table_args__ = (Index("ix_chat_messages_document_created", "document_id", "created_at"),)

    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), nullable=False)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False)
    content = Column(Text, nullable=False)
