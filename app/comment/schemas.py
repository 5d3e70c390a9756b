# app/comment/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field, HttpUrl, model_validator

from app.auth.schemas import ProfileOut


class CommentCreate(BaseModel):
    content: str = Field(default="", max_length=2000)
    image_url: HttpUrl | None = None
    parent_id: int | None = None

    model_config = {"str_strip_whitespace": True}

    @model_validator(mode="after")
    def not_empty(self):
        if not self.content and self.image_url is None:
            raise ValueError("Comment must have text or an image")
        return self


class ReactionTally(BaseModel):
    emoji: str
    count: int
    reacted: bool = False


class ReactionIn(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=16)

    model_config = {"str_strip_whitespace": True}


class ReactionState(BaseModel):
    comment_id: int
    reactions: list[ReactionTally]


class CommentOut(BaseModel):
    id: int
    ticket_id: int
    user_id: int
    parent_id: int | None = None
    content: str
    image_url: str | None = None
    created_at: datetime
    profile: ProfileOut | None = None
    reactions: list[ReactionTally] = []
    read_by: int = 0
    mentions: list[str] = []
    replies: list["CommentOut"] = []


class ReadIn(BaseModel):
    comment_ids: list[int] | None = None


class ReadResult(BaseModel):
    marked: int
    unread: int


class UnreadOut(BaseModel):
    ticket_id: int
    unread: int


class TypingIn(BaseModel):
    is_typing: bool = True


class TypingOut(BaseModel):
    ticket_id: int
    users: list[str]
