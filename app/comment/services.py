# app/comment/services.py
import logging
import re

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.auth import services as auth_service
from app.auth.models import User
from app.auth.schemas import ProfileOut
from app.comment.models import Comment, Mention, ReadReceipt, Reaction
from app.comment.presence import presence
from app.comment.schemas import CommentCreate, CommentOut, ReactionState, ReactionTally
from app.core.exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationFailed
from app.realtime.broker import DELETE, INSERT, UPDATE, comments_channel, notify, presence_channel
from app.ticket import services as ticket_service

logger = logging.getLogger(__name__)

MENTION = re.compile(r"(?<![\w@])@([A-Za-z0-9_.-]{3,20})")


def extract_mentions(content: str) -> set[str]:
    names = set()
    for match in MENTION.finditer(content or ""):
        name = match.group(1).rstrip(".")
        if len(name) >= 3:
            names.add(name)
    return names


def tally_reactions(reactions: list[Reaction], viewer_id: int | None = None) -> list[ReactionTally]:
    """Group reactions by emoji in order of first use."""
    tally: dict[str, ReactionTally] = {}
    for reaction in reactions:
        entry = tally.setdefault(reaction.emoji, ReactionTally(emoji=reaction.emoji, count=0))
        entry.count += 1
        if viewer_id is not None and reaction.user_id == viewer_id:
            entry.reacted = True
    return list(tally.values())


def serialize(comment: Comment, viewer_id: int | None = None) -> CommentOut:
    return CommentOut(
        id=comment.id,
        ticket_id=comment.ticket_id,
        user_id=comment.user_id,
        parent_id=comment.parent_id,
        content=comment.content,
        image_url=comment.image_url,
        created_at=comment.created_at,
        profile=ProfileOut.model_validate(comment.profile) if comment.profile else None,
        reactions=tally_reactions(comment.reactions, viewer_id),
        read_by=len(comment.receipts),
        mentions=sorted(m.user.profile.username for m in comment.mentions if m.user and m.user.profile),
    )


def nest(comments: list[CommentOut]) -> list[CommentOut]:
    """Attach replies to their parents; replies whose parent is missing stay at the top level."""
    by_id = {c.id: c for c in comments}
    roots = []
    for comment in comments:
        parent = by_id.get(comment.parent_id) if comment.parent_id else None
        if parent is not None:
            parent.replies.append(comment)
        else:
            roots.append(comment)
    return roots


def _with_details(query):
    return query.options(
        joinedload(Comment.author).joinedload(User.profile),
        selectinload(Comment.reactions),
        selectinload(Comment.receipts),
        selectinload(Comment.mentions).joinedload(Mention.user).joinedload(User.profile),
    )


def get_comment(db: Session, comment_id: int) -> Comment | None:
    return db.query(Comment).filter(Comment.id == comment_id).first()


def require_comment(db: Session, comment_id: int) -> Comment:
    comment = get_comment(db, comment_id)
    if not comment:
        raise NotFoundError("Comment not found")
    return comment


def list_comments(db: Session, ticket_id: int, viewer: User | None = None, tree: bool = True) -> list[CommentOut]:
    ticket_service.require_ticket(db, ticket_id)
    rows = (
        _with_details(db.query(Comment))
        .filter(Comment.ticket_id == ticket_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    viewer_id = viewer.id if viewer else None
    comments = [serialize(c, viewer_id) for c in rows]
    return nest(comments) if tree else comments


def add_comment(db: Session, ticket_id: int, user: User, payload: CommentCreate) -> CommentOut:
    ticket_service.require_ticket(db, ticket_id)
    if payload.parent_id is not None:
        parent = get_comment(db, payload.parent_id)
        if parent is None or parent.ticket_id != ticket_id:
            raise ValidationFailed("Parent comment not found on this ticket")

    comment = Comment(
        ticket_id=ticket_id,
        user_id=user.id,
        parent_id=payload.parent_id,
        content=payload.content,
        image_url=str(payload.image_url) if payload.image_url else None,
    )
    for profile in auth_service.find_profiles_by_username(db, extract_mentions(payload.content)):
        if profile.user_id != user.id:
            comment.mentions.append(Mention(user_id=profile.user_id))

    db.add(comment)
    db.commit()
    db.refresh(comment)

    presence.clear(ticket_id, user.id)
    out = serialize(comment, user.id)
    logger.info("Comment posted", extra={"ticket_id": ticket_id, "comment_id": comment.id})
    notify([comments_channel(ticket_id)], "comments", INSERT, out.model_dump(mode="json"))
    return out


def delete_comment(db: Session, comment_id: int, user: User) -> None:
    comment = require_comment(db, comment_id)
    is_admin = bool(user.profile and user.profile.is_admin)
    if comment.user_id != user.id and not is_admin:
        raise AccessDeniedError("You can only delete your own comments")

    record = {"id": comment.id, "ticket_id": comment.ticket_id, "parent_id": comment.parent_id}
    db.delete(comment)
    db.commit()
    logger.info("Comment deleted", extra=record)
    notify([comments_channel(record["ticket_id"])], "comments", DELETE, record)


def toggle_reaction(db: Session, comment_id: int, user: User, emoji: str) -> ReactionState:
    comment = require_comment(db, comment_id)
    existing = (
        db.query(Reaction)
        .filter(Reaction.comment_id == comment_id, Reaction.user_id == user.id, Reaction.emoji == emoji)
        .first()
    )
    if existing:
        db.delete(existing)
        event = DELETE
    else:
        db.add(Reaction(comment_id=comment_id, user_id=user.id, emoji=emoji))
        event = INSERT

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Reaction already recorded")

    db.refresh(comment)
    state = ReactionState(comment_id=comment_id, reactions=tally_reactions(comment.reactions, user.id))
    notify(
        [comments_channel(comment.ticket_id)],
        "comment_reactions",
        event,
        {"comment_id": comment_id, "user_id": user.id, "emoji": emoji},
    )
    return state


def mark_read(db: Session, ticket_id: int, user: User, comment_ids: list[int] | None = None) -> int:
    """Record receipts for comments by other people. Returns how many receipts were new."""
    ticket_service.require_ticket(db, ticket_id)
    query = db.query(Comment.id).filter(Comment.ticket_id == ticket_id, Comment.user_id != user.id)
    if comment_ids is not None:
        query = query.filter(Comment.id.in_(comment_ids))
    candidates = {row[0] for row in query.all()}

    already = {
        row[0]
        for row in db.query(ReadReceipt.comment_id)
        .filter(ReadReceipt.user_id == user.id, ReadReceipt.comment_id.in_(list(candidates)))
        .all()
    }
    fresh = sorted(candidates - already)
    for comment_id in fresh:
        db.add(ReadReceipt(comment_id=comment_id, user_id=user.id))
    db.commit()

    if fresh:
        notify(
            [comments_channel(ticket_id)],
            "comment_read_receipts",
            INSERT,
            {"user_id": user.id, "comment_ids": fresh},
        )
    return len(fresh)


def unread_count(db: Session, ticket_id: int, user: User) -> int:
    read_ids = select(ReadReceipt.comment_id).where(ReadReceipt.user_id == user.id)
    return (
        db.query(func.count(Comment.id))
        .filter(
            Comment.ticket_id == ticket_id,
            Comment.user_id != user.id,
            Comment.id.not_in(read_ids),
        )
        .scalar()
    )


def mentions_for(db: Session, user: User) -> list[CommentOut]:
    rows = (
        _with_details(db.query(Comment))
        .join(Mention, Mention.comment_id == Comment.id)
        .filter(Mention.user_id == user.id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )
    return [serialize(c, user.id) for c in rows]


def set_typing(ticket_id: int, user: User, is_typing: bool) -> list[str]:
    username = user.profile.username if user.profile else str(user.id)
    presence.set_typing(ticket_id, user.id, username, is_typing)
    users = presence.typing_users(ticket_id)
    notify(
        [presence_channel(ticket_id)],
        "presence",
        UPDATE,
        {"ticket_id": ticket_id, "user_id": user.id, "username": username, "is_typing": is_typing, "typing": users},
    )
    return presence.typing_users(ticket_id, exclude_user_id=user.id)
