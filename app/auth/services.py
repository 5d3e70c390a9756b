# app/auth/services.py
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth.models import Profile, User
from app.auth.schemas import SignIn, SignUp
from app.core import security
from app.core.exceptions import AuthenticationError, ConflictError

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_profiles(db: Session, user_ids: set[int]) -> dict[int, Profile]:
    if not user_ids:
        return {}
    rows = db.query(Profile).filter(Profile.user_id.in_(user_ids)).all()
    return {p.user_id: p for p in rows}


def find_profiles_by_username(db: Session, usernames: set[str]) -> list[Profile]:
    if not usernames:
        return []
    lowered = {u.lower() for u in usernames}
    return db.query(Profile).filter(func.lower(Profile.username).in_(lowered)).all()


def sign_up(db: Session, payload: SignUp) -> User:
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("This email is already registered")
    if find_profiles_by_username(db, {payload.username}):
        raise ConflictError("This username is already taken")

    user = User(email=email, hashed_password=security.get_password_hash(payload.password))
    user.profile = Profile(username=payload.username)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Account created", extra={"user_id": user.id})
    return user


def sign_in(db: Session, payload: SignIn) -> User:
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not security.verify_password(payload.password, user.hashed_password):
        logger.warning("Sign-in failed", extra={"email": payload.email})
        raise AuthenticationError("Invalid email or password")
    return user


def issue_token(user: User) -> dict:
    return {
        "access_token": security.create_access_token(user.id),
        "token_type": "bearer",
        "profile": user.profile,
    }
