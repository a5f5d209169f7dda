"""
FREE tier limit on concurrently active debts (OPEN or PARTIAL).
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core import config
from app.core.exceptions import QuotaExceededError
from app.models.debt import ACTIVE_DEBT_STATUSES, Debt
from app.services.entitlement import is_premium_user

logger = logging.getLogger(__name__)


def count_active_debts(db: Session, user_id: int) -> int:
    return (
        db.query(Debt)
        .filter(Debt.user_id == user_id, Debt.status.in_(ACTIVE_DEBT_STATUSES))
        .count()
    )


def check_debt_quota(db: Session, user_id: int, limit: Optional[int] = None) -> None:
    """Raise QuotaExceededError if a FREE user already has ``limit`` active debts."""
    if is_premium_user(db, user_id):
        logger.debug(f"User {user_id} is PREMIUM - bypassing debt limit check")
        return

    limit = limit if limit is not None else config.FREE_DEBT_LIMIT
    active_debt_count = count_active_debts(db, user_id)
    if active_debt_count >= limit:
        logger.warning(f"User {user_id} exceeded debt limit: {active_debt_count}/{limit}")
        raise QuotaExceededError(
            f"You have reached the maximum limit of {limit} active debts for FREE tier. "
            "Upgrade to PREMIUM for unlimited debt tracking.",
            details={"limit": limit, "current": active_debt_count},
        )

    logger.debug(f"User {user_id} debt count: {active_debt_count}/{limit}")
