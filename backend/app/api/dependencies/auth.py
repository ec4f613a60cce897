# backend/app/api/dependencies/auth.py
"""
Authentication dependencies.

The bearer token only carries the user id; the user row is loaded off the
event loop so a slow query never blocks other requests.
"""

import asyncio
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...core.exceptions import UnauthorizedException
from ...models.user import User
from ...repositories import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


async def get_current_active_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the token subject to an active user.

    Raises:
        UnauthorizedException: the user no longer exists or is deactivated
    """
    repository = RepositoryFactory.create_user_repository(db)
    user = await asyncio.to_thread(repository.get_active, user_id)
    if user is None:
        logger.warning("Token subject is not an active user", extra={"user_id": user_id})
        raise UnauthorizedException("Could not validate credentials", code="INVALID_TOKEN")
    return user
