# app/ticket/models.py
import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from app.core.database import Base, utcnow


class TicketType(str, enum.Enum):
    bug = "bug"
    suggestion = "suggestion"
    feature = "feature"


class TicketStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    accepted = "accepted"
    resolved = "resolved"
    rejected = "rejected"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    type = Column(String, default=TicketType.bug.value, index=True, nullable=False)
    status = Column(String, default=TicketStatus.pending.value, index=True, nullable=False)
    upvotes = Column(Integer, default=0, nullable=False)
    downvotes = Column(Integer, default=0, nullable=False)
    image_url = Column(String, nullable=True)
    video_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    author = relationship("User")
    comments = relationship("Comment", back_populates="ticket", cascade="all, delete-orphan")
    votes = relationship("Vote", back_populates="ticket", cascade="all, delete-orphan")

    @property
    def profile(self):
        return self.author.profile if self.author else None
