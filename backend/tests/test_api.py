from datetime import timedelta

from app.core.database import utcnow
from app.models.subscription import SubscriptionPlan, SubscriptionStatus
from app.services.subscription import create_trial_for_new_user


def _headers(user):
    return {"X-User-Id": str(user.id)}


def test_requires_user_header(client):
    assert client.get("/api/subscriptions/status").status_code == 401


def test_unknown_and_inactive_users(client, make_user):
    assert client.get("/api/subscriptions/status", headers={"X-User-Id": "999"}).status_code == 401

    inactive = make_user(is_active=False)
    assert client.get("/api/subscriptions/status", headers=_headers(inactive)).status_code == 403


def test_status_for_trial_user(client, db, make_user):
    user = make_user()
    create_trial_for_new_user(db, user.id)

    response = client.get("/api/subscriptions/status", headers=_headers(user))
    assert response.status_code == 200
    body = response.json()
    assert body["tier"] == "PREMIUM"
    assert body["status"] == "TRIAL"
    assert body["is_premium"] is True
    assert body["is_trial"] is True
    assert body["trial_days_remaining"] == 14


def test_status_without_active_subscription(client, make_user):
    response = client.get("/api/subscriptions/status", headers=_headers(make_user()))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


def test_start_trial(client, free_user):
    user = free_user(utcnow())

    response = client.post("/api/subscriptions/trial", headers=_headers(user))
    assert response.status_code == 201
    assert response.json()["status"] == "TRIAL"
    assert response.json()["plan"] == "PREMIUM"

    again = client.post("/api/subscriptions/trial", headers=_headers(user))
    assert again.status_code == 403
    assert again.json()["error"]["code"] == "trial_not_eligible"


def test_cancel(client, db, make_user, free_user):
    premium = make_user()
    create_trial_for_new_user(db, premium.id)
    assert client.post("/api/subscriptions/cancel", headers=_headers(premium)).status_code == 204

    free = free_user(utcnow())
    response = client.post("/api/subscriptions/cancel", headers=_headers(free))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_state"


def test_history(client, make_user, add_subscription):
    now = utcnow()
    user = make_user()
    add_subscription(user, SubscriptionPlan.PREMIUM, SubscriptionStatus.EXPIRED, now - timedelta(days=20), now - timedelta(days=6), trial_granted=True)
    add_subscription(user, SubscriptionPlan.FREE, SubscriptionStatus.ACTIVE, now - timedelta(days=6))

    response = client.get("/api/subscriptions/history?limit=1", headers=_headers(user))
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [s["plan"] for s in body["subscriptions"]] == ["FREE"]


def test_upgrade_info(client, free_user):
    response = client.get("/api/subscriptions/upgrade", headers=_headers(free_user(utcnow())))
    assert response.status_code == 200
    body = response.json()
    assert body["premium"] is False
    assert body["target_tier"] == "PREMIUM"
    assert body["price"] == 25000.0
    assert body["currency"] == "IDR"


def test_report_quota(client, free_user):
    response = client.get("/api/subscriptions/report-quota", headers=_headers(free_user(utcnow())))
    assert response.status_code == 200
    body = response.json()
    assert body["is_premium"] is False
    assert body["limit"] == 10
    assert body["remaining"] == 10


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
