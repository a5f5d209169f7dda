"""
User directory lookups used by the subscription engine.
"""
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.user import User


def get_user(db: Session, user_id: int, lock: bool = False) -> User:
    """
    Resolve a user id or raise NotFoundError.

    With ``lock=True`` the user row is locked (SELECT ... FOR UPDATE) until the
    surrounding transaction ends, which serialises subscription changes per user.
    """
    query = db.query(User).filter(User.id == user_id)
    if lock:
        query = query.with_for_update()
    user = query.first()
    if not user:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user

