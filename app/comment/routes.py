# app/comment/routes.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user, get_optional_user
from app.auth.models import User
from app.comment import services as comment_service
from app.comment.presence import presence
from app.comment.schemas import (
    CommentCreate,
    CommentOut,
    ReactionIn,
    ReactionState,
    ReadIn,
    ReadResult,
    TypingIn,
    TypingOut,
    UnreadOut,
)
from app.core.database import get_db
from app.ticket import services as ticket_service

router = APIRouter(tags=["Comments"])


@router.get("/tickets/{ticket_id}/comments", response_model=list[CommentOut])
def list_comments(
    ticket_id: int,
    tree: bool = Query(default=True, description="Nest replies under their parent comment"),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    return comment_service.list_comments(db, ticket_id, viewer, tree=tree)


@router.post("/tickets/{ticket_id}/comments", response_model=CommentOut, status_code=201)
def add_comment(
    ticket_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return comment_service.add_comment(db, ticket_id, user, payload)


@router.delete("/comments/{comment_id}", status_code=204)
def delete_comment(comment_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    comment_service.delete_comment(db, comment_id, user)


@router.post("/comments/{comment_id}/reactions", response_model=ReactionState)
def react(
    comment_id: int,
    payload: ReactionIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return comment_service.toggle_reaction(db, comment_id, user, payload.emoji)


@router.post("/tickets/{ticket_id}/comments/read", response_model=ReadResult)
def mark_read(
    ticket_id: int,
    payload: ReadIn | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    marked = comment_service.mark_read(db, ticket_id, user, payload.comment_ids if payload else None)
    return ReadResult(marked=marked, unread=comment_service.unread_count(db, ticket_id, user))


@router.get("/tickets/{ticket_id}/comments/unread", response_model=UnreadOut)
def unread(ticket_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    ticket_service.require_ticket(db, ticket_id)
    return UnreadOut(ticket_id=ticket_id, unread=comment_service.unread_count(db, ticket_id, user))


@router.get("/mentions", response_model=list[CommentOut])
def my_mentions(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return comment_service.mentions_for(db, user)


@router.post("/tickets/{ticket_id}/typing", response_model=TypingOut)
def typing(
    ticket_id: int,
    payload: TypingIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ticket_service.require_ticket(db, ticket_id)
    return TypingOut(ticket_id=ticket_id, users=comment_service.set_typing(ticket_id, user, payload.is_typing))


@router.get("/tickets/{ticket_id}/typing", response_model=TypingOut)
def who_is_typing(
    ticket_id: int,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    ticket_service.require_ticket(db, ticket_id)
    users = presence.typing_users(ticket_id, exclude_user_id=viewer.id if viewer else None)
    return TypingOut(ticket_id=ticket_id, users=users)
