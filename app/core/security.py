# app/core/security.py
import logging
import uuid
from datetime import timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings
from app.core.database import utcnow

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
ADMIN = "admin"


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(claims: dict[str, Any], expires: timedelta) -> str:
    settings = get_settings()
    to_encode = dict(claims)
    to_encode["exp"] = utcnow() + expires
    to_encode["jti"] = uuid.uuid4().hex
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(user_id: int) -> str:
    settings = get_settings()
    return _encode(
        {"sub": str(user_id), "type": ACCESS},
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_admin_token(username: str) -> str:
    settings = get_settings()
    return _encode(
        {"sub": username, "type": ADMIN},
        timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES),
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Return the claims of a valid token, or None when it is expired or malformed."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except JWTError:
        logger.warning("Rejected malformed token")
        return None
