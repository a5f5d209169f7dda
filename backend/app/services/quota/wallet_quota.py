"""
FREE tier wallet limit.

Point-in-time check against the live wallet count; two concurrent creates
from the same FREE user can both pass.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core import config
from app.core.exceptions import QuotaExceededError
from app.models.wallet import Wallet
from app.services.entitlement import is_premium_user

logger = logging.getLogger(__name__)


def count_wallets(db: Session, user_id: int) -> int:
    return db.query(Wallet).filter(Wallet.user_id == user_id).count()


def check_wallet_quota(db: Session, user_id: int, limit: Optional[int] = None) -> None:
    """Raise QuotaExceededError if a FREE user already has ``limit`` wallets."""
    if is_premium_user(db, user_id):
        logger.debug(f"User {user_id} is PREMIUM - bypassing wallet limit check")
        return

    limit = limit if limit is not None else config.FREE_WALLET_LIMIT
    wallet_count = count_wallets(db, user_id)
    if wallet_count >= limit:
        logger.warning(f"User {user_id} exceeded wallet limit: {wallet_count}/{limit}")
        raise QuotaExceededError(
            f"Free users can only create {limit} wallet(s). Upgrade to premium for unlimited wallets.",
            details={"limit": limit, "current": wallet_count},
        )

    logger.debug(f"User {user_id} wallet count: {wallet_count}/{limit}")
