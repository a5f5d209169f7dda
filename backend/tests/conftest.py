from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers tables)
from app.core.database import Base, get_db
from app.models.subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from app.models.user import User


class FakeClock:
    """Mutable clock for caches and limiters."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 10, 5, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(email=None, is_active=True):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            full_name=f"User {counter['n']}",
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def add_subscription(db):
    """Insert a subscription row directly, bypassing the lifecycle rules."""

    def _add(user, plan, status, started_at, ended_at=None, provider=None, trial_granted=False):
        subscription = Subscription(
            user_id=user.id,
            plan=plan,
            status=status,
            provider=provider,
            started_at=started_at,
            ended_at=ended_at,
            trial_granted=trial_granted,
        )
        db.add(subscription)
        db.commit()
        return subscription

    return _add


@pytest.fixture
def free_user(make_user, add_subscription):
    def _free_user(now, **kwargs):
        user = make_user(**kwargs)
        add_subscription(user, SubscriptionPlan.FREE, SubscriptionStatus.ACTIVE, started_at=now)
        return user

    return _free_user


@pytest.fixture
def client(db):
    # No context manager: startup would bind the real database and start the scheduler
    from app.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
