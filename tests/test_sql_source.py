"""
Tests for SqlSubscriptionSource against SQLite.

Covers renewal numbering, the uniqueness guard, pushdown filters,
organization scoping and the persisted expiry sweep.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from exceptions import ConflictError
from subscribers.models import Subscriber
from subscription.models import Subscription
from subscription.schemas import SubscriptionCreate, SubscriptionFilters
from subscription.services import SubscriptionService
from subscription.sources import SqlSubscriptionSource
from conftest import TODAY


def values(subscriber_id, start=TODAY, days=30, **overrides):
    data = {
        "subscriber_id": subscriber_id,
        "plan_id": None,
        "price": Decimal("30.00"),
        "start_date": start,
        "end_date": start + timedelta(days=days),
        "status": "active",
        "payment_status": "unpaid",
        "notes": None,
    }
    data.update(overrides)
    return data


@pytest.fixture
def source(db):
    return SqlSubscriptionSource(db)


class TestInsert:
    """Test renewal numbering in the database."""

    def test_sequential_counts(self, source, organization, subscriber):
        rows = [source.insert(organization.id, values(subscriber.id)) for _ in range(3)]
        assert [r.renewal_count for r in rows] == [1, 2, 3]
        assert rows[0].subscriber.name == "Ahmed Hassan"

    def test_deleted_row_does_not_block_renewal(self, source, organization, subscriber):
        rows = [source.insert(organization.id, values(subscriber.id)) for _ in range(3)]
        assert source.delete(organization.id, rows[1].id)
        renewed = SubscriptionService(source).create_or_renew_subscription(organization.id, SubscriptionCreate(
            subscriber_id=subscriber.id, price=Decimal("30"), start_date=TODAY, end_date=TODAY + timedelta(days=30)
        ))
        assert renewed.renewal_count == 4

    def test_stale_count_raises_conflict(self, source, organization, subscriber, monkeypatch):
        source.insert(organization.id, values(subscriber.id))
        monkeypatch.setattr(source, "last_renewal_count", lambda org_id, subscriber_id: 0)
        with pytest.raises(ConflictError):
            source.insert(organization.id, values(subscriber.id))

    def test_service_retry_recovers_from_one_stale_lookup(self, db, source, organization, subscriber, monkeypatch):
        source.insert(organization.id, values(subscriber.id))
        real_last = SqlSubscriptionSource.last_renewal_count
        calls = []

        def stale_once(org_id, subscriber_id):
            calls.append(subscriber_id)
            if len(calls) == 1:
                return 0
            return real_last(source, org_id, subscriber_id)

        monkeypatch.setattr(source, "last_renewal_count", stale_once)
        service = SubscriptionService(source)
        row = service.create_or_renew_subscription(organization.id, SubscriptionCreate(
            subscriber_id=subscriber.id, price=Decimal("30"), start_date=TODAY, end_date=TODAY + timedelta(days=30)
        ))
        assert row.renewal_count == 2
        assert db.query(Subscription).count() == 2


class TestFetch:
    """Test pushdown filters and tenant scoping."""

    def test_scoped_to_organization(self, db, source, organization, other_organization, subscriber):
        outsider = Subscriber(organization_id=other_organization.id, name="Outsider")
        db.add(outsider)
        db.commit()
        source.insert(organization.id, values(subscriber.id))
        source.insert(other_organization.id, values(outsider.id))
        assert len(source.fetch(organization.id)) == 1
        assert source.get(other_organization.id, source.fetch(organization.id)[0].id) is None

    def test_pushdown_filters(self, source, organization, subscriber):
        source.insert(organization.id, values(subscriber.id, payment_status="paid", days=3))
        source.insert(organization.id, values(subscriber.id, payment_status="unpaid", days=30))
        assert len(source.fetch(organization.id, payment_status="paid")) == 1
        window = source.fetch(organization.id, end_date_from=TODAY, end_date_to=TODAY + timedelta(days=7))
        assert [r.payment_status for r in window] == ["paid"]

    def test_subscriber_lookup_is_scoped(self, source, organization, other_organization, subscriber):
        assert source.get_subscriber(organization.id, subscriber.id).name == "Ahmed Hassan"
        assert source.get_subscriber(other_organization.id, subscriber.id) is None


class TestExpireDue:
    """Test the persisted sweep against the in-memory rule."""

    def test_sweep_persists_and_is_idempotent(self, source, organization, subscriber):
        old = source.insert(organization.id, values(subscriber.id, start=TODAY - timedelta(days=31), days=30))
        current = source.insert(organization.id, values(subscriber.id, start=TODAY - timedelta(days=30), days=30))
        assert source.expire_due(organization.id, TODAY) == 1
        assert source.expire_due(organization.id, TODAY) == 0
        assert source.get(organization.id, old.id).status == "expired"
        assert source.get(organization.id, current.id).status == "active"

    def test_list_after_sweep_matches_list_before(self, source, organization, subscriber):
        source.insert(organization.id, values(subscriber.id, start=TODAY - timedelta(days=40), days=30))
        service = SubscriptionService(source, today=lambda: TODAY)
        before = service.list_subscriptions(organization.id, SubscriptionFilters())
        service.expire_due_subscriptions(organization.id)
        after = service.list_subscriptions(organization.id, SubscriptionFilters())
        assert [r.status for r in before.rows] == [r.status for r in after.rows] == ["expired"]
