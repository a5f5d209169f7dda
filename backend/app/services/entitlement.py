"""
Entitlement gate: "is this user premium right now?"

Consumed by wallet creation, debt creation, report generation and the
dashboard. Fails closed: when the active subscription can't be read the
user is treated as FREE.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import config
from app.core.exceptions import NotFoundError
from app.models.subscription import SubscriptionPlan
from app.services.subscription.subscription_service import get_active_subscription

logger = logging.getLogger(__name__)


def is_premium_user(db: Session, user_id: int, now: Optional[datetime] = None) -> bool:
    try:
        subscription = get_active_subscription(db, user_id, now)
    except NotFoundError:
        logger.debug(f"User {user_id} has no active subscription, treating as FREE")
        return False
    except SQLAlchemyError as e:
        logger.warning(f"Could not read subscription for user {user_id}, treating as FREE: {e}")
        return False
    return subscription.is_premium(now)


def get_user_tier(db: Session, user_id: int, now: Optional[datetime] = None) -> SubscriptionPlan:
    return SubscriptionPlan.PREMIUM if is_premium_user(db, user_id, now) else SubscriptionPlan.FREE


def get_export_limit(db: Session, user_id: int) -> int:
    """Max records per export for the user's tier."""
    return config.PREMIUM_EXPORT_LIMIT if is_premium_user(db, user_id) else config.FREE_EXPORT_LIMIT


def get_date_range_limit(db: Session, user_id: int) -> int:
    """Max days in a report date range for the user's tier."""
    return config.PREMIUM_DATE_RANGE_DAYS if is_premium_user(db, user_id) else config.FREE_DATE_RANGE_DAYS
