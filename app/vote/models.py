# app/vote/models.py
import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.database import Base, utcnow


class VoteType(str, enum.Enum):
    up = "up"
    down = "down"


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (UniqueConstraint("ticket_id", "user_id", name="uq_vote_ticket_user"),)

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    vote_type = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    ticket = relationship("Ticket", back_populates="votes")
