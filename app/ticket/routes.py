# app/ticket/routes.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user, require_admin
from app.auth.models import User
from app.core.database import get_db
from app.ticket import services as ticket_service
from app.ticket.models import TicketStatus, TicketType
from app.ticket.schemas import StatusUpdate, TicketCreate, TicketOut

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("", response_model=TicketOut, status_code=201)
def create(ticket: TicketCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    created = ticket_service.create_ticket(db, user, ticket)
    return ticket_service.to_out(created)


@router.get("", response_model=list[TicketOut])
def list_all(
    search: str | None = Query(default=None, description="Case-insensitive match on title or description"),
    type: TicketType | None = Query(default=None, description="Filter by type: bug, suggestion or feature"),
    status: TicketStatus | None = Query(default=None, description="Filter by status"),
    db: Session = Depends(get_db),
):
    return ticket_service.list_tickets(db, search=search, type=type, status=status)


@router.get("/{ticket_id}", response_model=TicketOut)
def get(ticket_id: int, db: Session = Depends(get_db)):
    return ticket_service.ticket_detail(db, ticket_id)


@router.patch("/{ticket_id}/status", response_model=TicketOut)
def update_status(
    ticket_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(require_admin),
):
    ticket_service.update_status(db, ticket_id, payload.status, actor)
    return ticket_service.ticket_detail(db, ticket_id)


@router.delete("/{ticket_id}", status_code=204)
def delete(ticket_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    ticket_service.delete_ticket_as(db, ticket_id, user)
