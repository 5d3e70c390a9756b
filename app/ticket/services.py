# app/ticket/services.py
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.auth.models import User
from app.comment.models import Comment
from app.core.exceptions import AccessDeniedError, NotFoundError
from app.realtime.broker import DELETE, INSERT, UPDATE, notify, tickets_channel
from app.ticket.models import Ticket, TicketStatus, TicketType
from app.ticket.schemas import TicketCreate, TicketOut

logger = logging.getLogger(__name__)


def to_out(ticket: Ticket, comment_count: int = 0) -> TicketOut:
    return TicketOut.model_validate(ticket).model_copy(update={"comment_count": comment_count})


def publish(ticket: Ticket, event: str) -> None:
    notify([tickets_channel()], "tickets", event, to_out(ticket).model_dump(mode="json"))


def comment_counts(db: Session, ticket_ids: list[int]) -> dict[int, int]:
    if not ticket_ids:
        return {}
    rows = (
        db.query(Comment.ticket_id, func.count(Comment.id))
        .filter(Comment.ticket_id.in_(ticket_ids))
        .group_by(Comment.ticket_id)
        .all()
    )
    return dict(rows)


def get_all_tickets(
    db: Session,
    search: str | None = None,
    type: TicketType | None = None,
    status: TicketStatus | None = None,
) -> list[Ticket]:
    query = db.query(Ticket).options(joinedload(Ticket.author).joinedload(User.profile))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Ticket.title.ilike(pattern), Ticket.description.ilike(pattern)))
    if type:
        query = query.filter(Ticket.type == type.value)
    if status:
        query = query.filter(Ticket.status == status.value)
    return query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()


def list_tickets(db: Session, **filters) -> list[TicketOut]:
    tickets = get_all_tickets(db, **filters)
    counts = comment_counts(db, [t.id for t in tickets])
    return [to_out(t, counts.get(t.id, 0)) for t in tickets]


def get_ticket(db: Session, ticket_id: int) -> Ticket | None:
    return db.query(Ticket).filter(Ticket.id == ticket_id).first()


def require_ticket(db: Session, ticket_id: int) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found")
    return ticket


def ticket_detail(db: Session, ticket_id: int) -> TicketOut:
    ticket = require_ticket(db, ticket_id)
    return to_out(ticket, comment_counts(db, [ticket.id]).get(ticket.id, 0))


def create_ticket(db: Session, user: User, payload: TicketCreate) -> Ticket:
    db_ticket = Ticket(
        user_id=user.id,
        title=payload.title,
        description=payload.description,
        type=payload.type.value,
        image_url=str(payload.image_url) if payload.image_url else None,
        video_url=str(payload.video_url) if payload.video_url else None,
    )
    db.add(db_ticket)
    db.commit()
    db.refresh(db_ticket)
    logger.info("Ticket submitted", extra={"ticket_id": db_ticket.id, "type": db_ticket.type})
    publish(db_ticket, INSERT)
    return db_ticket


def update_status(db: Session, ticket_id: int, status: TicketStatus, actor: str) -> Ticket:
    db_ticket = require_ticket(db, ticket_id)
    if db_ticket.status == status.value:
        return db_ticket
    previous = db_ticket.status
    db_ticket.status = status.value
    db.commit()
    db.refresh(db_ticket)
    logger.info(
        "Ticket status changed",
        extra={"ticket_id": ticket_id, "from": previous, "to": status.value, "actor": actor},
    )
    publish(db_ticket, UPDATE)
    return db_ticket


def delete_ticket(db: Session, ticket_id: int) -> Ticket:
    db_ticket = require_ticket(db, ticket_id)
    snapshot = to_out(db_ticket)
    db.delete(db_ticket)
    db.commit()
    logger.info("Ticket deleted", extra={"ticket_id": ticket_id})
    notify([tickets_channel()], "tickets", DELETE, snapshot.model_dump(mode="json"))
    return db_ticket


def delete_ticket_as(db: Session, ticket_id: int, user: User) -> Ticket:
    db_ticket = require_ticket(db, ticket_id)
    is_admin = bool(user.profile and user.profile.is_admin)
    if db_ticket.user_id != user.id and not is_admin:
        raise AccessDeniedError("You can only delete your own tickets")
    return delete_ticket(db, ticket_id)
