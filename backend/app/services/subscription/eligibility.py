"""
Trial eligibility check.

A trial is a one-time benefit, so this is evaluated fresh on every call.
"""
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.services import payment_history
from app.services.subscription import subscription_repository

logger = logging.getLogger(__name__)

PaymentCheck = Callable[[Session, int], bool]


def is_eligible_for_trial(
    db: Session,
    user_id: int,
    has_successful_payment: Optional[PaymentCheck] = None
) -> bool:
    """
    A user is eligible only if they never had a trial (the registration trial
    included), never had a PREMIUM subscription and never paid successfully.
    """
    has_successful_payment = has_successful_payment or payment_history.has_successful_payment

    if subscription_repository.has_had_trial(db, user_id):
        logger.debug(f"User {user_id} not eligible: already had a trial")
        return False

    if subscription_repository.has_had_premium(db, user_id):
        logger.debug(f"User {user_id} not eligible: has had a premium subscription")
        return False

    if has_successful_payment(db, user_id):
        logger.debug(f"User {user_id} not eligible: has a successful payment")
        return False

    logger.debug(f"User {user_id} is eligible for trial")
    return True
