from sqlalchemy import Column, String, Text, Integer, ForeignKey, UUID, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from clurb.db.base import BaseModel


class Document(BaseModel):
    __tablename__ = "documents"

    owner_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_url = Column(String(1024), nullable=False)
    file_type = Column(String(100), nullable=False, default="application/pdf")
    total_pages = Column(Integer, nullable=False, default=0)

    # Relationships
    owner = relationship("Profile", back_populates="owned_documents")
    memberships = relationship("Membership", back_populates="document", cascade="all, delete-orphan")


class Membership(BaseModel):
    __tablename__ = "memberships"
    __table_args__ = (UniqueConstraint("document_id", "user_id", name="uq_membership_document_user"),)

    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="viewer")

    # Relationships
    document = relationship("Document", back_populates="memberships")
    user = relationship("Profile", back_populates="memberships")


class Invitation(BaseModel):
    __tablename__ = "invitations"

    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), nullable=False, index=True)
    inviter_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False)
    invitee_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    message = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
