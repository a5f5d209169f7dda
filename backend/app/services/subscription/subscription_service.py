"""
Subscription service for managing user subscriptions.

Every mutating operation commits once on success and rolls back before
re-raising on failure, so a cancel-then-create either lands completely or
not at all.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core import config
from app.core.business_events import log_business_event
from app.core.database import ensure_utc, utcnow
from app.core.exceptions import InvalidStateError, NotFoundError, TrialNotEligibleError
from app.models.subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from app.services.subscription import subscription_repository
from app.services.subscription.eligibility import PaymentCheck, is_eligible_for_trial
from app.services.subscription.subscription_models import SubscriptionStats, UpgradeInfo
from app.services.user_directory import get_user

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return ensure_utc(now) if now else utcnow()


def _event_attributes(subscription: Subscription) -> dict:
    return {
        "subscription_id": subscription.id,
        "plan": subscription.plan,
        "status": subscription.status,
        "started_at": subscription.started_at,
        "ended_at": subscription.ended_at,
    }


def _build_trial(user_id: int, now: datetime, trial_days: int) -> Subscription:
    return Subscription(
        user_id=user_id,
        plan=SubscriptionPlan.PREMIUM,
        status=SubscriptionStatus.TRIAL,
        provider=None,
        provider_reference=None,
        started_at=now,
        ended_at=now + timedelta(days=trial_days),
        trial_granted=True,
    )


def get_active_subscription(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None
) -> Subscription:
    """
    Get the subscription that is authoritative right now.

    Returns the most recently started record whose ``is_active`` holds.

    Raises:
        NotFoundError: if the user has no active subscription
    """
    logger.debug(f"Getting active subscription for user: {user_id}")
    subscription = subscription_repository.find_active_by_user(db, user_id, _now(now))
    if not subscription:
        raise NotFoundError("No active subscription found", details={"user_id": user_id})
    return subscription


def get_current_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    """
    Get the latest subscription regardless of status.

    Used for displaying subscription info even when expired or cancelled.
    """
    return subscription_repository.find_latest_by_user(db, user_id)


def get_subscription_history(
    db: Session,
    user_id: int,
    limit: Optional[int] = None,
    offset: int = 0
) -> List[Subscription]:
    """All subscription records of the user, newest first."""
    return subscription_repository.find_all_by_user(db, user_id, limit=limit, offset=offset)


def create_trial_for_new_user(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None,
    trial_days: Optional[int] = None,
    commit: bool = True
) -> Subscription:
    """
    Grant the registration trial.

    Skips the eligibility check: this runs once, at account creation, before any
    other subscription can exist for the user. Pass ``commit=False`` to leave the
    transaction, including any rollback on failure, to a larger registration flow.
    """
    now = _now(now)
    trial_days = trial_days if trial_days is not None else config.TRIAL_DAYS
    logger.info(f"Creating TRIAL subscription for new user registration: {user_id}")

    try:
        user = get_user(db, user_id)
        subscription = subscription_repository.add(db, _build_trial(user_id, now, trial_days))
        if commit:
            db.commit()
    except Exception:
        if commit:
            db.rollback()
        raise

    log_business_event("USER_REGISTERED_WITH_TRIAL", user.email, _event_attributes(subscription))
    logger.info(f"TRIAL subscription created for new user {user_id} (expires: {subscription.ended_at})")
    return subscription


def create_trial_self_service(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None,
    trial_days: Optional[int] = None,
    has_successful_payment: Optional[PaymentCheck] = None
) -> Subscription:
    """
    Start a trial requested by the user.

    Checks eligibility first; an ineligible user gets TrialNotEligibleError and
    nothing is written. Otherwise the current active (FREE) subscription is
    cancelled and the TRIAL record created in the same transaction.
    """
    now = _now(now)
    trial_days = trial_days if trial_days is not None else config.TRIAL_DAYS
    logger.info(f"Creating TRIAL subscription for user: {user_id}")

    try:
        user = get_user(db, user_id, lock=True)

        if not is_eligible_for_trial(db, user_id, has_successful_payment):
            raise TrialNotEligibleError("User is not eligible for trial", details={"user_id": user_id})

        current = subscription_repository.find_active_by_user(db, user_id, now)
        if current is not None:
            current.cancel(now)
            subscription_repository.save(db, current)

        subscription = subscription_repository.add(db, _build_trial(user_id, now, trial_days))
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_business_event("TRIAL_STARTED", user.email, _event_attributes(subscription))
    logger.info(f"TRIAL subscription created for user {user_id} (expires: {subscription.ended_at})")
    return subscription


def create_free_subscription(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None,
    commit: bool = True
) -> Subscription:
    """
    Create an ACTIVE/FREE subscription without expiry.

    Used when a trial is reconciled and whenever a paid subscription lapses.
    """
    now = _now(now)
    logger.info(f"Creating FREE subscription for user: {user_id}")

    try:
        user = get_user(db, user_id)
        subscription = subscription_repository.add(db, Subscription(
            user_id=user_id,
            plan=SubscriptionPlan.FREE,
            status=SubscriptionStatus.ACTIVE,
            provider=None,
            provider_reference=None,
            started_at=now,
            ended_at=None,
        ))
        if commit:
            db.commit()
    except Exception:
        if commit:
            db.rollback()
        raise

    log_business_event("FREE_SUBSCRIPTION_CREATED", user.email, _event_attributes(subscription))
    return subscription


def cancel_subscription(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None
) -> Subscription:
    """
    Cancel the user's active subscription, effective immediately.

    Raises:
        NotFoundError: no active subscription
        InvalidStateError: the active subscription is FREE (nothing to cancel)
    """
    now = _now(now)
    logger.info(f"Cancelling subscription for user: {user_id}")

    try:
        user = get_user(db, user_id, lock=True)
        subscription = get_active_subscription(db, user_id, now)

        if subscription.plan == SubscriptionPlan.FREE:
            raise InvalidStateError("Cannot cancel FREE tier subscription", details={"user_id": user_id})

        subscription.cancel(now)
        subscription_repository.save(db, subscription)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_business_event("SUBSCRIPTION_CANCELLED", user.email, _event_attributes(subscription))
    logger.info(f"Subscription cancelled for user: {user_id}")
    return subscription


def activate_or_extend_premium(
    db: Session,
    user_id: int,
    provider: str,
    provider_reference: str,
    days: int,
    now: Optional[datetime] = None
) -> Subscription:
    """
    Apply a confirmed payment.

    An active PREMIUM subscription is extended by ``days``; otherwise the current
    record (if any) is cancelled and a new ACTIVE/PREMIUM one created.
    """
    if days <= 0:
        raise ValueError("days must be positive")
    now = _now(now)
    logger.info(f"Activating/extending subscription for user {user_id} with {days} days")

    try:
        user = get_user(db, user_id, lock=True)
        current = subscription_repository.find_active_by_user(db, user_id, now)

        if current is not None and current.is_premium(now):
            current.extend_by(days, now)
            subscription = subscription_repository.save(db, current)
            event_type = "SUBSCRIPTION_EXTENDED"
        else:
            if current is not None:
                current.cancel(now)
                subscription_repository.save(db, current)
            subscription = subscription_repository.add(db, Subscription(
                user_id=user_id,
                plan=SubscriptionPlan.PREMIUM,
                status=SubscriptionStatus.ACTIVE,
                provider=provider,
                provider_reference=provider_reference,
                started_at=now,
                ended_at=now + timedelta(days=days),
            ))
            event_type = "SUBSCRIPTION_ACTIVATED"
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_business_event(event_type, user.email, _event_attributes(subscription))
    logger.info(f"Premium subscription for user {user_id} valid until {subscription.ended_at}")
    return subscription


def get_subscription_stats(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None
) -> SubscriptionStats:
    """Entitlement summary of the active subscription."""
    now = _now(now)
    subscription = get_active_subscription(db, user_id, now)
    is_premium = subscription.is_premium(now)
    is_trial = subscription.is_trial(now)
    days_remaining = subscription.days_remaining(now)

    return SubscriptionStats(
        subscription=subscription,
        tier=SubscriptionPlan.PREMIUM if is_premium else SubscriptionPlan.FREE,
        is_premium=is_premium,
        is_trial=is_trial,
        days_remaining=days_remaining,
        trial_days_remaining=days_remaining if is_trial else None,
    )


def get_upgrade_info(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None
) -> UpgradeInfo:
    current = get_active_subscription(db, user_id, now)

    if current.is_premium(now):
        return UpgradeInfo(
            message="You already have an active premium subscription",
            current_tier=current.plan,
            premium=True,
        )

    return UpgradeInfo(
        message="To upgrade to premium, complete a subscription payment",
        current_tier=current.plan,
        premium=False,
        target_tier=SubscriptionPlan.PREMIUM,
        price=config.PREMIUM_PRICE,
        currency=config.PREMIUM_CURRENCY,
        duration_days=config.PREMIUM_DURATION_DAYS,
    )
