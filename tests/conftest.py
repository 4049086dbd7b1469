"""
Shared fixtures: an in-memory SQLite database, tenants, and an API client
authenticated as an organization's admin.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from auth.models import Organization, User, ActivityLog  # noqa: F401
from auth.routes import get_current_user
from subscribers.models import Subscriber
from subscribers.schemas import SubscriberBrief
from plans.models import Plan
from subscription.models import Subscription  # noqa: F401
from subscription.schemas import SubscriptionRead
from subscription.fixtures import demo_source_for
from main import app

TODAY = date(2025, 1, 15)


def make_row(
    id,
    subscriber_id,
    status="active",
    end_date=None,
    created_at=None,
    payment_status="paid",
    organization_id=1,
    renewal_count=1,
    name=None,
    email=None,
    start_date=None,
    price="30.00",
):
    """Build a SubscriptionRead for pure reconciler tests."""
    end_date = end_date or TODAY + timedelta(days=10)
    return SubscriptionRead(
        id=id,
        organization_id=organization_id,
        subscriber_id=subscriber_id,
        plan_id=None,
        price=Decimal(price),
        start_date=start_date or end_date - timedelta(days=30),
        end_date=end_date,
        status=status,
        payment_status=payment_status,
        renewal_count=renewal_count,
        created_at=created_at or datetime(2025, 1, 1) + timedelta(minutes=id),
        subscriber=SubscriberBrief(
            id=subscriber_id,
            name=name or f"Subscriber {subscriber_id}",
            email=email or f"subscriber{subscriber_id}@example.com",
        ),
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def organization(db):
    org = Organization(name="Acme ISP")
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


@pytest.fixture
def other_organization(db):
    org = Organization(name="Other Tenant")
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


@pytest.fixture
def admin_user(db, organization):
    user = User(
        organization_id=organization.id,
        email="admin@acme.example.com",
        password_hash="not-used",
        role="admin",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def subscriber(db, organization):
    sub = Subscriber(organization_id=organization.id, name="Ahmed Hassan", email="ahmed@example.com")
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


@pytest.fixture
def plan(db, organization):
    p = Plan(organization_id=organization.id, name="Monthly", price=Decimal("30.00"), period_value=1, period_unit="month")
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def client(db, admin_user):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: admin_user
    demo_source_for.cache_clear()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        demo_source_for.cache_clear()
