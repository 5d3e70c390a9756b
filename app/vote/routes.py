# app/vote/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user
from app.auth.models import User
from app.core.database import get_db
from app.vote import services as vote_service
from app.vote.schemas import VoteIn, VoteState

router = APIRouter(prefix="/tickets/{ticket_id}/vote", tags=["Votes"])


@router.post("", response_model=VoteState)
def vote(ticket_id: int, payload: VoteIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return vote_service.cast_vote(db, ticket_id, user, payload.vote_type)


@router.get("", response_model=VoteState)
def my_vote(ticket_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return vote_service.vote_state(db, ticket_id, user)
