# app/comment/models.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import backref, relationship
from app.core.database import Base, utcnow


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    parent_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), index=True, nullable=True)
    content = Column(Text, nullable=False, default="")
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)

    ticket = relationship("Ticket", back_populates="comments")
    author = relationship("User")
    replies = relationship(
        "Comment",
        cascade="all, delete-orphan",
        backref=backref("parent", remote_side=[id]),
    )
    reactions = relationship("Reaction", cascade="all, delete-orphan", order_by="Reaction.id")
    receipts = relationship("ReadReceipt", cascade="all, delete-orphan")
    mentions = relationship("Mention", back_populates="comment", cascade="all, delete-orphan")

    @property
    def profile(self):
        return self.author.profile if self.author else None


class Reaction(Base):
    __tablename__ = "comment_reactions"
    __table_args__ = (UniqueConstraint("comment_id", "user_id", "emoji", name="uq_reaction"),)

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    emoji = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class ReadReceipt(Base):
    __tablename__ = "comment_read_receipts"
    __table_args__ = (UniqueConstraint("comment_id", "user_id", name="uq_read_receipt"),)

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    read_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Mention(Base):
    __tablename__ = "comment_mentions"
    __table_args__ = (UniqueConstraint("comment_id", "user_id", name="uq_mention"),)

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    comment = relationship("Comment", back_populates="mentions")
    user = relationship("User")
