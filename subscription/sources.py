# src/subscription/sources.py
import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from subscription.models import Subscription
from subscription.schemas import SubscriptionRead
from subscription.reconciler import is_due_for_expiry, next_renewal_count
from subscribers.models import Subscriber
from subscribers.schemas import SubscriberBrief
from plans.models import Plan
from plans.schemas import PlanBrief
from exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)


class SubscriptionSource(ABC):
    """Storage seen by the subscription service. Every call is scoped to one organization."""

    @abstractmethod
    def fetch(
            self,
            org_id: int,
            payment_status: Optional[str] = None,
            subscriber_id: Optional[int] = None,
            end_date_from: Optional[date] = None,
            end_date_to: Optional[date] = None
    ) -> List[SubscriptionRead]:
        ...

    @abstractmethod
    def last_renewal_count(self, org_id: int, subscriber_id: int) -> int:
        """Highest renewal_count stored for the subscriber, 0 when it has none."""

    @abstractmethod
    def insert(self, org_id: int, values: Dict[str, Any]) -> SubscriptionRead:
        """Insert a row with renewal_count assigned atomically for its subscriber.

        Raises ConflictError when another insert claimed the same renewal_count.
        """

    @abstractmethod
    def get(self, org_id: int, subscription_id: int) -> Optional[SubscriptionRead]:
        ...

    @abstractmethod
    def update(self, org_id: int, subscription_id: int, changes: Dict[str, Any]) -> Optional[SubscriptionRead]:
        ...

    @abstractmethod
    def delete(self, org_id: int, subscription_id: int) -> bool:
        ...

    @abstractmethod
    def expire_due(self, org_id: int, today: date) -> int:
        """Persist active -> expired for rows that ended before today. Returns the number changed."""

    @abstractmethod
    def get_subscriber(self, org_id: int, subscriber_id: int) -> Optional[SubscriberBrief]:
        ...

    @abstractmethod
    def get_plan(self, org_id: int, plan_id: int) -> Optional[PlanBrief]:
        ...

    @abstractmethod
    def count_active_subscribers(self, org_id: int) -> int:
        ...


class SqlSubscriptionSource(SubscriptionSource):
    """Subscription rows stored through SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, org_id: int):
        return self.db.query(Subscription).options(
            joinedload(Subscription.subscriber),
            joinedload(Subscription.plan)
        ).filter(Subscription.organization_id == org_id)

    def _storage_error(self, operation: str, org_id: int, error: Exception) -> StorageError:
        self.db.rollback()
        logger.error(f"Subscription storage failed during {operation} for organization {org_id}: {str(error)}", exc_info=True)
        return StorageError()

    def fetch(self, org_id, payment_status=None, subscriber_id=None, end_date_from=None, end_date_to=None):
        query = self._query(org_id)
        if payment_status:
            query = query.filter(Subscription.payment_status == payment_status)
        if subscriber_id is not None:
            query = query.filter(Subscription.subscriber_id == subscriber_id)
        if end_date_from is not None:
            query = query.filter(Subscription.end_date >= end_date_from)
        if end_date_to is not None:
            query = query.filter(Subscription.end_date <= end_date_to)
        try:
            return [SubscriptionRead.from_orm(s) for s in query.all()]
        except SQLAlchemyError as e:
            raise self._storage_error("fetch", org_id, e)

    def last_renewal_count(self, org_id, subscriber_id):
        try:
            return self.db.query(func.max(Subscription.renewal_count)).filter(
                Subscription.organization_id == org_id,
                Subscription.subscriber_id == subscriber_id
            ).scalar() or 0
        except SQLAlchemyError as e:
            raise self._storage_error("renewal lookup", org_id, e)

    def insert(self, org_id, values):
        renewal_count = next_renewal_count(self.last_renewal_count(org_id, values["subscriber_id"]))
        subscription = Subscription(organization_id=org_id, renewal_count=renewal_count, **values)
        try:
            self.db.add(subscription)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Renewal slot {renewal_count} for subscriber {values['subscriber_id']} already taken: {str(e)}")
            raise ConflictError()
        except SQLAlchemyError as e:
            raise self._storage_error("insert", org_id, e)
        return self.get(org_id, subscription.id)

    def _get_model(self, org_id, subscription_id) -> Optional[Subscription]:
        return self._query(org_id).filter(Subscription.id == subscription_id).first()

    def get(self, org_id, subscription_id):
        try:
            subscription = self._get_model(org_id, subscription_id)
        except SQLAlchemyError as e:
            raise self._storage_error("get", org_id, e)
        return SubscriptionRead.from_orm(subscription) if subscription else None

    def update(self, org_id, subscription_id, changes):
        try:
            subscription = self._get_model(org_id, subscription_id)
            if not subscription:
                return None
            for key, value in changes.items():
                setattr(subscription, key, value)
            subscription.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(subscription)
            return SubscriptionRead.from_orm(subscription)
        except SQLAlchemyError as e:
            raise self._storage_error("update", org_id, e)

    def delete(self, org_id, subscription_id):
        try:
            subscription = self._get_model(org_id, subscription_id)
            if not subscription:
                return False
            self.db.delete(subscription)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            raise self._storage_error("delete", org_id, e)

    def expire_due(self, org_id, today):
        try:
            changed = self.db.query(Subscription).filter(
                Subscription.organization_id == org_id,
                Subscription.status == "active",
                Subscription.end_date < today
            ).update({"status": "expired", "updated_at": datetime.utcnow()}, synchronize_session=False)
            self.db.commit()
            return changed
        except SQLAlchemyError as e:
            raise self._storage_error("expiry sweep", org_id, e)

    def get_subscriber(self, org_id, subscriber_id):
        subscriber = self.db.query(Subscriber).filter(
            Subscriber.id == subscriber_id,
            Subscriber.organization_id == org_id
        ).first()
        return SubscriberBrief.from_orm(subscriber) if subscriber else None

    def get_plan(self, org_id, plan_id):
        plan = self.db.query(Plan).filter(Plan.id == plan_id, Plan.organization_id == org_id).first()
        return PlanBrief.from_orm(plan) if plan else None

    def count_active_subscribers(self, org_id):
        return self.db.query(Subscriber).filter(
            Subscriber.organization_id == org_id,
            Subscriber.is_active == True
        ).count()


class InMemorySubscriptionSource(SubscriptionSource):
    """Subscription rows held in process memory, for fixtures and demo mode."""

    def __init__(self, rows: Iterable[SubscriptionRead] = ()):
        self._rows: List[SubscriptionRead] = list(rows)
        self._subscribers: Dict[Tuple[int, int], SubscriberBrief] = {}
        self._inactive_subscribers: set = set()
        self._plans: Dict[Tuple[int, int], PlanBrief] = {}
        self._next_id = max((r.id for r in self._rows), default=0) + 1
        self._lock = threading.Lock()
        self._subscriber_locks: Dict[int, threading.Lock] = defaultdict(threading.Lock)

    def add_subscriber(self, org_id: int, subscriber: SubscriberBrief, is_active: bool = True) -> None:
        self._subscribers[(org_id, subscriber.id)] = subscriber
        if not is_active:
            self._inactive_subscribers.add((org_id, subscriber.id))

    def add_plan(self, org_id: int, plan: PlanBrief) -> None:
        self._plans[(org_id, plan.id)] = plan

    def _scoped(self, org_id: int) -> List[SubscriptionRead]:
        with self._lock:
            return [r for r in self._rows if r.organization_id == org_id]

    def fetch(self, org_id, payment_status=None, subscriber_id=None, end_date_from=None, end_date_to=None):
        rows = self._scoped(org_id)
        if payment_status:
            rows = [r for r in rows if r.payment_status == payment_status]
        if subscriber_id is not None:
            rows = [r for r in rows if r.subscriber_id == subscriber_id]
        if end_date_from is not None:
            rows = [r for r in rows if r.end_date >= end_date_from]
        if end_date_to is not None:
            rows = [r for r in rows if r.end_date <= end_date_to]
        return rows

    def last_renewal_count(self, org_id, subscriber_id):
        return max((r.renewal_count for r in self._scoped(org_id) if r.subscriber_id == subscriber_id), default=0)

    def insert(self, org_id, values):
        with self._lock:
            subscriber_lock = self._subscriber_locks[values["subscriber_id"]]
        # Inserts for one subscriber are serialized, so the number read here stays unclaimed until the append.
        with subscriber_lock:
            renewal_count = next_renewal_count(self.last_renewal_count(org_id, values["subscriber_id"]))
            now = datetime.utcnow()
            plan_id = values.get("plan_id")
            with self._lock:
                row = SubscriptionRead(
                    id=self._next_id,
                    organization_id=org_id,
                    renewal_count=renewal_count,
                    created_at=now,
                    updated_at=now,
                    subscriber=self._subscribers.get((org_id, values["subscriber_id"])),
                    plan=self._plans.get((org_id, plan_id)) if plan_id is not None else None,
                    **values
                )
                self._next_id += 1
                self._rows.append(row)
        return row

    def get(self, org_id, subscription_id):
        for row in self._scoped(org_id):
            if row.id == subscription_id:
                return row
        return None

    def update(self, org_id, subscription_id, changes):
        with self._lock:
            for index, row in enumerate(self._rows):
                if row.organization_id == org_id and row.id == subscription_id:
                    updated = row.model_copy(update={**changes, "updated_at": datetime.utcnow()})
                    self._rows[index] = updated
                    return updated
        return None

    def delete(self, org_id, subscription_id):
        with self._lock:
            for index, row in enumerate(self._rows):
                if row.organization_id == org_id and row.id == subscription_id:
                    del self._rows[index]
                    return True
        return False

    def expire_due(self, org_id, today):
        changed = 0
        with self._lock:
            for index, row in enumerate(self._rows):
                if row.organization_id == org_id and is_due_for_expiry(row, today):
                    self._rows[index] = row.model_copy(update={"status": "expired", "updated_at": datetime.utcnow()})
                    changed += 1
        return changed

    def get_subscriber(self, org_id, subscriber_id):
        return self._subscribers.get((org_id, subscriber_id))

    def get_plan(self, org_id, plan_id):
        return self._plans.get((org_id, plan_id))

    def count_active_subscribers(self, org_id):
        return len([
            key for key in self._subscribers
            if key[0] == org_id and key not in self._inactive_subscribers
        ])
