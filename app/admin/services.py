# app/admin/services.py
import hmac
import logging

from app.core import security
from app.core.config import Settings
from app.core.exceptions import AdminNotConfiguredError, AuthenticationError

logger = logging.getLogger(__name__)


def admin_login(settings: Settings, username: str, password: str) -> str:
    """Check the console credentials and mint an admin-scope token."""
    logger.info("Admin login attempt", extra={"username": username})
    if not settings.admin_configured:
        logger.error("Admin credentials not configured")
        raise AdminNotConfiguredError()

    user_ok = hmac.compare_digest(username.encode(), settings.ADMIN_USERNAME.encode())
    pass_ok = hmac.compare_digest(password.encode(), settings.ADMIN_PASSWORD.encode())
    if not (user_ok and pass_ok):
        logger.warning("Admin login failed - invalid credentials")
        raise AuthenticationError("Invalid credentials")

    logger.info("Admin login successful")
    return security.create_admin_token(username)
