# app/vote/services.py
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.models import User
from app.core.exceptions import ConflictError
from app.realtime.broker import DELETE, INSERT, UPDATE, notify, tickets_channel
from app.ticket import services as ticket_service
from app.ticket.models import Ticket
from app.vote.models import Vote, VoteType
from app.vote.schemas import VoteState

logger = logging.getLogger(__name__)


def get_user_vote(db: Session, ticket_id: int, user_id: int) -> Vote | None:
    return db.query(Vote).filter(Vote.ticket_id == ticket_id, Vote.user_id == user_id).first()


def recount(db: Session, ticket: Ticket) -> None:
    """Set the ticket's counters from its vote rows."""
    rows = (
        db.query(Vote.vote_type, func.count(Vote.id))
        .filter(Vote.ticket_id == ticket.id)
        .group_by(Vote.vote_type)
        .all()
    )
    tally = dict(rows)
    ticket.upvotes = tally.get(VoteType.up.value, 0)
    ticket.downvotes = tally.get(VoteType.down.value, 0)


def cast_vote(db: Session, ticket_id: int, user: User, vote_type: VoteType) -> VoteState:
    """
    Same vote again removes it, the opposite vote replaces it, no vote
    inserts one.
    """
    ticket = ticket_service.require_ticket(db, ticket_id)
    existing = get_user_vote(db, ticket_id, user.id)

    if existing and existing.vote_type == vote_type.value:
        db.delete(existing)
        current, event = None, DELETE
    elif existing:
        existing.vote_type = vote_type.value
        current, event = vote_type, UPDATE
    else:
        db.add(Vote(ticket_id=ticket_id, user_id=user.id, vote_type=vote_type.value))
        current, event = vote_type, INSERT

    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Vote already recorded")

    recount(db, ticket)
    db.commit()
    db.refresh(ticket)
    logger.info(
        "Vote recorded",
        extra={"ticket_id": ticket_id, "user_id": user.id, "vote": current.value if current else None},
    )
    notify(
        [tickets_channel()],
        "votes",
        event,
        {"ticket_id": ticket_id, "user_id": user.id, "vote_type": vote_type.value},
    )
    ticket_service.publish(ticket, UPDATE)
    return VoteState(ticket_id=ticket_id, vote_type=current, upvotes=ticket.upvotes, downvotes=ticket.downvotes)


def vote_state(db: Session, ticket_id: int, user: User) -> VoteState:
    ticket = ticket_service.require_ticket(db, ticket_id)
    vote = get_user_vote(db, ticket_id, user.id)
    return VoteState(
        ticket_id=ticket_id,
        vote_type=VoteType(vote.vote_type) if vote else None,
        upvotes=ticket.upvotes,
        downvotes=ticket.downvotes,
    )
