"""
Identity and role dependencies.

Authentication happens upstream; the gateway forwards the authenticated
user's id in a header (settings.user_id_header). These dependencies turn
that header into an active User and enforce role-based access.
"""
import logging
from typing import Callable, List, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AuthenticationError, ForbiddenError
from app.database import get_db
from app.models.role import ADMIN_ROLES
from app.models.user import User

logger = logging.getLogger(__name__)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolves the acting user from the forwarded identity header.
    """
    raw_id: Optional[str] = request.headers.get(settings.user_id_header)
    if not raw_id:
        logger.warning("Authentication failed: missing identity header")
        raise AuthenticationError("Missing user identity")

    try:
        user_id = int(raw_id)
    except ValueError:
        logger.warning(f"Authentication failed: malformed user id {raw_id!r}")
        raise AuthenticationError("Invalid user identity")

    user = db.get(User, user_id)
    if user is None:
        logger.warning(f"Authentication failed: user {user_id} not found in database")
        raise AuthenticationError("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: user {user_id} is inactive")
        raise ForbiddenError("User is inactive")
    return user


def require_role(allowed_roles: List[str]) -> Callable:
    """
    Dependency factory that checks if the user holds one of the allowed role names.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role(["HR"]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role_name not in allowed_roles:
            raise ForbiddenError(f"Access denied. Required roles: {list(allowed_roles)}")
        return current_user
    return role_checker


def require_admin():
    """Shorthand for SUPER_ADMIN or HR."""
    return require_role(list(ADMIN_ROLES))

