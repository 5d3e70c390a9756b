# app/auth/deps.py
"""
Bearer-token dependencies shared by every router.

Two token kinds exist: ``access`` tokens for community members and
``admin`` tokens minted by the admin console login. ``require_admin``
accepts either an admin token or an access token whose profile is flagged
``is_admin``.
"""
import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.auth import services as auth_service
from app.auth.models import User
from app.core import security
from app.core.database import get_db
from app.core.exceptions import AccessDeniedError, AuthenticationError

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/signin", auto_error=False)


def _user_from_claims(claims: dict | None, db: Session) -> User | None:
    if claims is None or claims.get("type") != security.ACCESS:
        return None
    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
    return auth_service.get_user(db, user_id)


def get_optional_user(token: str | None = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User | None:
    if not token:
        return None
    return _user_from_claims(security.decode_token(token), db)


def get_current_user(token: str | None = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    if not token:
        raise AuthenticationError("Not authenticated")
    user = _user_from_claims(security.decode_token(token), db)
    if user is None:
        logger.warning("Authentication failed: invalid or expired token")
        raise AuthenticationError()
    return user


def require_admin(token: str | None = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> str:
    """Return the acting admin's name."""
    if not token:
        raise AuthenticationError("Not authenticated")
    claims = security.decode_token(token)
    if claims is None:
        raise AuthenticationError()
    if claims.get("type") == security.ADMIN:
        return claims.get("sub") or "admin"

    user = _user_from_claims(claims, db)
    if user is None:
        raise AuthenticationError()
    if not (user.profile and user.profile.is_admin):
        raise AccessDeniedError("Admin access required")
    return user.profile.username
