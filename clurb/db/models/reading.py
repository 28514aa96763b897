from sqlalchemy import Column, Integer, String, ForeignKey, UUID, DateTime, JSON, UniqueConstraint

from clurb.db.base import BaseModel, utcnow


class ReadingProgress(BaseModel):
    __tablename__ = "reading_progress"
    __table_args__ = (UniqueConstraint("document_id", "user_id", name="uq_progress_document_user"),)

    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    current_page = Column(Integer, nullable=False, default=1)
    last_read_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class ActivityEvent(BaseModel):
    __tablename__ = "activity_log"

    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), nullable=True, index=True)
    action_type = Column(String(50), nullable=False, index=True)
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)
