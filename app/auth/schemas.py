# app/auth/schemas.py
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class SignUp(BaseModel):
    username: str = Field(..., min_length=3, max_length=20, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=6)

    model_config = {"str_strip_whitespace": True}


class SignIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class ProfileOut(BaseModel):
    id: int
    user_id: int
    username: str
    avatar_url: str | None = None
    is_admin: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    profile: ProfileOut
