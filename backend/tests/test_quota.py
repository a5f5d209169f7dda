import threading
from datetime import datetime, timedelta, timezone

import pytest

from app.core.database import utcnow
from app.core.exceptions import QuotaExceededError, ReportLimitExceededError
from app.models.debt import Debt, DebtStatus
from app.models.wallet import Wallet
from app.services.quota import (
    ReportFrequencyLimiter,
    allow_report_generation,
    check_debt_quota,
    check_report_quota,
    check_wallet_quota,
    remaining_report_quota,
)
from app.services.subscription import create_trial_for_new_user


def _wallets(db, user, n):
    for i in range(n):
        db.add(Wallet(user_id=user.id, name=f"Wallet {i}"))
    db.commit()


def _debts(db, user, n, status=DebtStatus.OPEN):
    for i in range(n):
        db.add(Debt(user_id=user.id, counterparty_name=f"Friend {i}", total_amount=100.0, status=status))
    db.commit()


def test_free_user_gets_one_wallet(db, free_user):
    user = free_user(utcnow())
    check_wallet_quota(db, user.id)

    _wallets(db, user, 1)
    with pytest.raises(QuotaExceededError) as exc_info:
        check_wallet_quota(db, user.id)
    assert exc_info.value.details == {"limit": 1, "current": 1}


def test_premium_user_has_unlimited_wallets(db, make_user):
    user = make_user()
    create_trial_for_new_user(db, user.id)
    _wallets(db, user, 5)
    check_wallet_quota(db, user.id)


def test_free_user_debt_limit(db, free_user):
    user = free_user(utcnow())
    _debts(db, user, 9)
    _debts(db, user, 3, status=DebtStatus.PAID)
    check_debt_quota(db, user.id)

    _debts(db, user, 1, status=DebtStatus.PARTIAL)
    with pytest.raises(QuotaExceededError) as exc_info:
        check_debt_quota(db, user.id)
    assert exc_info.value.details == {"limit": 10, "current": 10}


def test_premium_user_has_unlimited_debts(db, make_user):
    user = make_user()
    create_trial_for_new_user(db, user.id)
    _debts(db, user, 15)
    check_debt_quota(db, user.id)


def test_report_limiter_refuses_eleventh_report(clock):
    limiter = ReportFrequencyLimiter(limit=10, reference_timezone="Asia/Jakarta", clock=clock)

    assert all(limiter.allow(7) for _ in range(10))
    assert limiter.remaining(7) == 0
    assert limiter.allow(7) is False
    assert limiter.allow(7) is False
    assert limiter.remaining(7) == 0
    assert limiter.remaining(8) == 10


def test_report_limiter_resets_at_reference_midnight(clock):
    # 23:59 in Jakarta (UTC+7)
    clock.now = datetime(2024, 3, 10, 16, 59, tzinfo=timezone.utc)
    limiter = ReportFrequencyLimiter(limit=10, reference_timezone="Asia/Jakarta", clock=clock)
    for _ in range(10):
        limiter.allow(7)
    assert limiter.window_key(7) == "7:2024-03-10"
    assert not limiter.allow(7)

    clock.advance(minutes=1)
    assert limiter.window_key(7) == "7:2024-03-11"
    assert limiter.remaining(7) == 10
    assert limiter.allow(7)


def test_report_limiter_reset(clock):
    limiter = ReportFrequencyLimiter(limit=2, clock=clock)
    limiter.allow(1)
    limiter.allow(1)
    limiter.reset(1)
    assert limiter.remaining(1) == 2


def test_premium_reports_are_not_counted(db, make_user, clock):
    user = make_user()
    create_trial_for_new_user(db, user.id)
    limiter = ReportFrequencyLimiter(limit=1, clock=clock)

    for _ in range(5):
        assert allow_report_generation(db, user.id, limiter)
    assert remaining_report_quota(db, user.id, limiter) == 1


def test_free_user_report_quota(db, free_user, clock):
    user = free_user(utcnow())
    limiter = ReportFrequencyLimiter(limit=2, clock=clock)

    check_report_quota(db, user.id, limiter)
    assert remaining_report_quota(db, user.id, limiter) == 1
    check_report_quota(db, user.id, limiter)

    with pytest.raises(ReportLimitExceededError) as exc_info:
        check_report_quota(db, user.id, limiter)
    assert exc_info.value.status_code == 429
    assert exc_info.value.details == {"limit": 2, "remaining": 0}


def test_reports_counted_when_tier_unknown(db, make_user, clock, monkeypatch):
    from app.services.quota import report_frequency

    user = make_user()
    create_trial_for_new_user(db, user.id)
    monkeypatch.setattr(report_frequency, "is_premium_user", lambda session, user_id: False)
    limiter = ReportFrequencyLimiter(limit=1, clock=clock)

    assert allow_report_generation(db, user.id, limiter)
    assert not allow_report_generation(db, user.id, limiter)


def test_counters_are_per_user(clock):
    limiter = ReportFrequencyLimiter(limit=1, clock=clock)
    assert limiter.allow(1)
    assert limiter.allow(2)
    assert not limiter.allow(1)


def test_report_counter_expires_with_window(clock):
    limiter = ReportFrequencyLimiter(limit=1, window=timedelta(hours=1), clock=clock)
    limiter.allow(1)
    clock.advance(hours=1)
    # Same calendar day, but the counter expired
    assert limiter.allow(1)


def test_shared_limiter_is_created_once(monkeypatch):
    from app.services.quota import get_report_limiter, report_frequency

    monkeypatch.setattr(report_frequency, "_limiter", None)
    barrier = threading.Barrier(8)
    seen = []

    def worker():
        barrier.wait()
        seen.append(get_report_limiter())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(seen) == 8
    assert all(limiter is seen[0] for limiter in seen)
