# backend/marketplace/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The user lookup is a blocking query, so it runs in a worker thread.
"""

import asyncio
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_token_subject
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


def _load_user(db: Session, user_id: str) -> Optional[User]:
    return RepositoryFactory.create_user_repository(db).get_by_id(user_id, load_relationships=False)


async def get_current_user(
    user_id: str = Depends(get_token_subject),
    db: Session = Depends(get_db),
) -> User:
    """
    The active user named by the bearer token.

    Raises:
        HTTPException: 401 if the user does not exist or is deactivated
    """
    user = await asyncio.to_thread(_load_user, db, user_id)
    if user is None or not user.is_active:
        logger.info("Rejected token for unknown or inactive user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency that ensures the caller has administrator privileges."""

    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
