# backend/fitbook/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The token identifies the user; the user row decides whether the account is
active and which role it acts in.
"""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from ...database import get_db

logger = logging.getLogger(__name__)


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    """Load the active user behind the bearer token."""
    user = RepositoryFactory.create_user_repository(db).get_active(user_id)
    if user is None:
        logger.warning("Token for unknown or inactive user", extra={"user_id": user_id})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_trainer(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_trainer:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Trainer account required",
        )
    return current_user

