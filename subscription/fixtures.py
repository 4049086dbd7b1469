# src/subscription/fixtures.py
from datetime import date, datetime, timedelta
from decimal import Decimal
from functools import lru_cache
from subscription.schemas import SubscriptionRead
from subscription.sources import InMemorySubscriptionSource
from subscribers.schemas import SubscriberBrief
from plans.schemas import PlanBrief

DEMO_SUBSCRIBERS = [
    SubscriberBrief(id=1, name="Ahmed Hassan", email="ahmed@example.com", phone="+201000000001"),
    SubscriberBrief(id=2, name="Sara Ali", email="sara@example.com", phone="+201000000002"),
    SubscriberBrief(id=3, name="Omar Khaled", email="omar@example.com", phone=None),
    SubscriberBrief(id=4, name="Mona Adel", email=None, phone="+201000000004"),
]

DEMO_PLANS = [
    PlanBrief(id=1, name="Monthly", price=Decimal("30.00")),
    PlanBrief(id=2, name="Quarterly", price=Decimal("80.00")),
]


def build_demo_source(org_id: int, today: date) -> InMemorySubscriptionSource:
    """Fixture data set relative to today: renewals, an expiring row, an overdue row and an unpaid history."""
    subscribers = {s.id: s for s in DEMO_SUBSCRIBERS}
    plans = {p.id: p for p in DEMO_PLANS}
    # (subscriber, plan, start offset, end offset, status, payment status, renewal)
    layout = [
        (1, 1, -65, -35, "active", "paid", 1),
        (1, 1, -35, -5, "active", "paid", 2),
        (1, 1, -5, 25, "active", "unpaid", 3),
        (2, 2, -85, 5, "active", "paid", 1),
        (3, 1, -40, -10, "active", "unpaid", 1),
        (3, 1, -10, 20, "pending", "unpaid", 2),
        (4, None, -120, -90, "cancelled", "partial", 1),
    ]
    rows = []
    for index, (subscriber_id, plan_id, start, end, status, payment_status, renewal) in enumerate(layout, start=1):
        plan = plans.get(plan_id)
        rows.append(SubscriptionRead(
            id=index,
            organization_id=org_id,
            subscriber_id=subscriber_id,
            plan_id=plan_id,
            price=plan.price if plan else Decimal("45.00"),
            start_date=today + timedelta(days=start),
            end_date=today + timedelta(days=end),
            status=status,
            payment_status=payment_status,
            renewal_count=renewal,
            created_at=datetime.combine(today + timedelta(days=start), datetime.min.time()),
            subscriber=subscribers[subscriber_id],
            plan=plan,
        ))

    source = InMemorySubscriptionSource(rows)
    for subscriber in DEMO_SUBSCRIBERS:
        source.add_subscriber(org_id, subscriber)
    for plan in DEMO_PLANS:
        source.add_plan(org_id, plan)
    return source


@lru_cache(maxsize=None)
def demo_source_for(org_id: int) -> InMemorySubscriptionSource:
    return build_demo_source(org_id, datetime.utcnow().date())
