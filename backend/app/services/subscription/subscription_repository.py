"""
Data access for subscription records.

Only the subscription service and the trial expiry job write through here.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.database import ensure_utc, utcnow
from app.models.subscription import (
    ACTIVE_STATUSES,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)


def add(db: Session, subscription: Subscription) -> Subscription:
    """Insert a new record and flush so its id is assigned."""
    db.add(subscription)
    db.flush()
    return subscription


def save(db: Session, subscription: Subscription) -> Subscription:
    """Flush pending changes on an existing record."""
    db.add(subscription)
    db.flush()
    return subscription


def find_active_by_user(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None
) -> Optional[Subscription]:
    """
    Most recently started record that is active at ``now``.

    Active means status ACTIVE or TRIAL and ended_at either unset or in the future.
    """
    now = ensure_utc(now) if now else utcnow()
    return (
        db.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.status.in_(ACTIVE_STATUSES),
            or_(Subscription.ended_at.is_(None), Subscription.ended_at > now),
        )
        .order_by(Subscription.started_at.desc())
        .first()
    )


def find_latest_by_user(db: Session, user_id: int) -> Optional[Subscription]:
    """Most recently started record regardless of status."""
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.started_at.desc())
        .first()
    )


def find_all_by_user(
    db: Session,
    user_id: int,
    limit: Optional[int] = None,
    offset: int = 0
) -> List[Subscription]:
    query = (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.started_at.desc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def count_by_user(db: Session, user_id: int) -> int:
    return db.query(Subscription).filter(Subscription.user_id == user_id).count()


def find_expired_trials(db: Session, cutoff: datetime) -> List[Subscription]:
    """TRIAL records whose ended_at is before ``cutoff``."""
    cutoff = ensure_utc(cutoff)
    return (
        db.query(Subscription)
        .filter(
            Subscription.status == SubscriptionStatus.TRIAL,
            Subscription.ended_at.isnot(None),
            Subscription.ended_at < cutoff,
        )
        .order_by(Subscription.ended_at)
        .all()
    )


def has_had_trial(db: Session, user_id: int) -> bool:
    """True if any TRIAL record ever existed, whatever its current status."""
    query = db.query(Subscription.id).filter(
        Subscription.user_id == user_id,
        or_(
            Subscription.status == SubscriptionStatus.TRIAL,
            Subscription.trial_granted.is_(True),
        ),
    )
    return db.query(query.exists()).scalar()


def has_had_premium(db: Session, user_id: int) -> bool:
    """True if any PREMIUM record ever existed, whatever its current status."""
    query = db.query(Subscription.id).filter(
        Subscription.user_id == user_id,
        Subscription.plan == SubscriptionPlan.PREMIUM,
    )
    return db.query(query.exists()).scalar()
