from sqlalchemy import Column, Float, Integer, String, Text, ForeignKey, UUID

from clurb.db.base import BaseModel


class StickyNote(BaseModel):
    __tablename__ = "sticky_notes"

    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    page_number = Column(Integer, nullable=False, index=True)
    content = Column(Text, nullable=False)
    position_x = Column(Float, nullable=False)
    position_y = Column(Float, nullable=False)
    # Компактная строка "icon:shape:color" или устаревший hex-цвет
    style = Column(String(100), nullable=False, default="star:rounded:purple")
