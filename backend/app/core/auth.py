"""
Authentication dependencies.

The caller is identified by the ``X-User-Id`` header set by the upstream
gateway after it has authenticated the request.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.models.user import User
from app.services.user_directory import get_user

__all__ = ['get_current_user_id', 'get_current_user_dependency']


def get_current_user_id(x_user_id: Optional[int] = Header(None)) -> int:
    """Dependency to get the authenticated user id."""
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return x_user_id


def get_current_user_dependency(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    """Dependency to get the authenticated user (must exist and be active)."""
    try:
        user = get_user(db, user_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive"
        )
    return user
