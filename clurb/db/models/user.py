from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from clurb.db.base import BaseModel


class Profile(BaseModel):
    __tablename__ = "profiles"

    username = Column(String(100), unique=True, index=True, nullable=False)
    display_name = Column(String(255), nullable=True)
    avatar_url = Column(String(1024), nullable=True)

    # Relationships
    owned_documents = relationship("Document", back_populates="owner")
    memberships = relationship("Membership", back_populates="user")
