from datetime import timedelta

from sqlalchemy.exc import OperationalError

from app.core import config
from app.core.database import utcnow
from app.models.subscription import SubscriptionPlan, SubscriptionStatus
from app.services import entitlement
from app.services.subscription import cancel_subscription, create_trial_for_new_user


def test_trial_user_is_premium(db, make_user):
    user = make_user()
    create_trial_for_new_user(db, user.id)
    assert entitlement.is_premium_user(db, user.id)
    assert entitlement.get_user_tier(db, user.id) == SubscriptionPlan.PREMIUM
    assert entitlement.get_export_limit(db, user.id) == config.PREMIUM_EXPORT_LIMIT
    assert entitlement.get_date_range_limit(db, user.id) == config.PREMIUM_DATE_RANGE_DAYS


def test_free_user_is_not_premium(db, free_user):
    user = free_user(utcnow())
    assert not entitlement.is_premium_user(db, user.id)
    assert entitlement.get_user_tier(db, user.id) == SubscriptionPlan.FREE
    assert entitlement.get_export_limit(db, user.id) == config.FREE_EXPORT_LIMIT
    assert entitlement.get_date_range_limit(db, user.id) == config.FREE_DATE_RANGE_DAYS


def test_user_without_subscription_is_not_premium(db, make_user):
    assert not entitlement.is_premium_user(db, make_user().id)
    assert not entitlement.is_premium_user(db, 12345)


def test_cancelled_premium_loses_access_immediately(db, make_user):
    user = make_user()
    create_trial_for_new_user(db, user.id)
    cancel_subscription(db, user.id)
    assert not entitlement.is_premium_user(db, user.id)


def test_trial_past_end_is_not_premium_before_reconciliation(db, make_user, add_subscription):
    now = utcnow()
    user = make_user()
    add_subscription(user, SubscriptionPlan.PREMIUM, SubscriptionStatus.TRIAL, now - timedelta(days=15), now - timedelta(minutes=1), trial_granted=True)
    assert not entitlement.is_premium_user(db, user.id, now)


def test_fails_closed_when_store_unavailable(db, make_user, monkeypatch):
    user = make_user()
    create_trial_for_new_user(db, user.id)

    def unavailable(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(entitlement, "get_active_subscription", unavailable)
    assert entitlement.is_premium_user(db, user.id) is False
