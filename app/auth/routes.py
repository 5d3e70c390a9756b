# app/auth/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth import services as auth_service
from app.auth.deps import get_current_user
from app.auth.models import User
from app.auth.schemas import ProfileOut, SignIn, SignUp, Token
from app.core.database import get_db

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signup", response_model=Token, status_code=201)
def signup(payload: SignUp, db: Session = Depends(get_db)):
    user = auth_service.sign_up(db, payload)
    return auth_service.issue_token(user)


@router.post("/signin", response_model=Token)
def signin(payload: SignIn, db: Session = Depends(get_db)):
    user = auth_service.sign_in(db, payload)
    return auth_service.issue_token(user)


@router.get("/me", response_model=ProfileOut)
def me(user: User = Depends(get_current_user)):
    return user.profile
