# app/admin/schemas.py
from pydantic import BaseModel


class AdminLogin(BaseModel):
    username: str
    password: str


class AdminLoginResult(BaseModel):
    success: bool
    token: str | None = None
    error: str | None = None
