# app/vote/schemas.py
from pydantic import BaseModel

from app.vote.models import VoteType


class VoteIn(BaseModel):
    vote_type: VoteType


class VoteState(BaseModel):
    ticket_id: int
    vote_type: VoteType | None = None
    upvotes: int
    downvotes: int
