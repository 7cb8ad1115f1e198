"""Requester identity.

Sessions are issued by an external identity provider (lifetime
``SESSION_TTL_MINUTES``); by the time a request reaches this service the
provider's gateway has resolved it to a user id carried in ``X-User-Id``.
"""
import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from eventdash.database import get_db
from eventdash.errors import Unauthorized
from eventdash.models.user import User

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias=USER_HEADER),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the requester, or None for anonymous visitors."""
    if not x_user_id:
        return None
    try:
        user_id = int(x_user_id)
    except ValueError:
        logger.warning("Ignoring malformed %s header: %r", USER_HEADER, x_user_id)
        return None
    return db.get(User, user_id)


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    """Dependency for endpoints that need a signed-in requester."""
    if user is None:
        raise Unauthorized()
    return user
