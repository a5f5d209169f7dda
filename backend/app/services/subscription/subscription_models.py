"""
Subscription result classes.
"""
from dataclasses import dataclass
from typing import Optional

from app.models.subscription import Subscription, SubscriptionPlan


@dataclass
class SubscriptionStats:
    """Entitlement view of a user's active subscription."""
    subscription: Subscription
    tier: SubscriptionPlan
    is_premium: bool
    is_trial: bool
    days_remaining: Optional[int]  # None = no fixed expiry
    trial_days_remaining: Optional[int]


@dataclass
class UpgradeInfo:
    """What a user needs to do to get PREMIUM."""
    message: str
    current_tier: SubscriptionPlan
    premium: bool
    target_tier: Optional[SubscriptionPlan] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    duration_days: Optional[int] = None
