# app/ticket/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field, HttpUrl, computed_field

from app.auth.schemas import ProfileOut
from app.ticket import media
from app.ticket.models import TicketStatus, TicketType


class TicketBase(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=20, max_length=2000)
    type: TicketType = TicketType.bug

    model_config = {"str_strip_whitespace": True}


class TicketCreate(TicketBase):
    image_url: HttpUrl | None = None
    video_url: HttpUrl | None = None


class StatusUpdate(BaseModel):
    status: TicketStatus


class TicketOut(BaseModel):
    id: int
    title: str
    description: str
    type: TicketType
    user_id: int
    status: TicketStatus
    upvotes: int
    downvotes: int
    image_url: str | None = None
    video_url: str | None = None
    created_at: datetime
    updated_at: datetime
    profile: ProfileOut | None = None
    comment_count: int = 0

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def video_embed_url(self) -> str | None:
        return media.youtube_embed(self.video_url)

    @computed_field
    @property
    def video_thumbnail_url(self) -> str | None:
        return media.youtube_thumbnail(self.video_url)
