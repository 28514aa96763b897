from sqlalchemy import Column, String, ForeignKey, UUID, DateTime, UniqueConstraint

from clurb.db.base import BaseModel


class Friendship(BaseModel):
    __tablename__ = "friendships"
    __table_args__ = (UniqueConstraint("user_id", "friend_id", name="uq_friendship_pair"),)

    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    friend_id = Column(UUID(as_uuid=True), ForeignKey("profiles.uuid"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    responded_at = Column(DateTime(timezone=True), nullable=True)
