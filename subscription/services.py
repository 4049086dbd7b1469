# src/subscription/services.py
import logging

from fastapi.encoders import jsonable_encoder
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Union
from subscription.schemas import SubscriptionCreate, SubscriptionUpdate, SubscriptionRead, SubscriptionFilters, SubscriptionPage
from subscription.sources import SubscriptionSource
from subscription.reconciler import reconcile, renewal_tag, can_transition, expiring_window, auto_expire, RENEWAL_TAG_RENEWAL
from auth.services import ActivityActions
from exceptions import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)

# (organization_id, action, entity_type, entity_id, details, user_id)
ActivityRecorder = Callable[..., None]


def utc_today() -> date:
    return datetime.utcnow().date()


class SubscriptionService:
    """Subscription operations over an injected row source."""

    def __init__(
            self,
            source: SubscriptionSource,
            record_activity: Optional[ActivityRecorder] = None,
            today: Callable[[], date] = utc_today
    ):
        self.source = source
        self.record_activity = record_activity
        self.today = today

    def _record(self, org_id: int, action: str, entity_id: int, details: Dict[str, Any], user_id: Optional[int]) -> None:
        if self.record_activity is None:
            return
        self.record_activity(org_id, action, "subscription",
                             entity_id=entity_id, details=jsonable_encoder(details), user_id=user_id)

    def list_subscriptions(
            self,
            org_id: int,
            filters: SubscriptionFilters,
            page: Union[int, str, None] = None,
            limit: Union[int, str, None] = None,
            today: Optional[date] = None
    ) -> SubscriptionPage:
        today = today or self.today()
        end_date_from = end_date_to = None
        if filters.expiring_soon:
            end_date_from, end_date_to = expiring_window(today)
        rows = self.source.fetch(
            org_id,
            payment_status=filters.payment_status,
            subscriber_id=filters.subscriber_id,
            end_date_from=end_date_from,
            end_date_to=end_date_to,
        )
        return reconcile(rows, filters, today, page, limit)

    def _insert_with_retry(self, org_id: int, values: Dict[str, Any]) -> SubscriptionRead:
        try:
            return self.source.insert(org_id, values)
        except ConflictError:
            logger.info(f"Retrying subscription insert for subscriber {values['subscriber_id']} after renewal conflict")
        return self.source.insert(org_id, values)

    def create_or_renew_subscription(
            self,
            org_id: int,
            data: SubscriptionCreate,
            user_id: Optional[int] = None
    ) -> SubscriptionRead:
        """Create a subscription row. A subscriber's first row is the initial one, later rows are renewals."""
        if data.end_date < data.start_date:
            raise ValidationError.for_field("end_date", "end_date must not be before start_date")

        if self.source.get_subscriber(org_id, data.subscriber_id) is None:
            raise NotFoundError("Subscriber", data.subscriber_id)

        plan_name = "Custom"
        if data.plan_id is not None:
            plan = self.source.get_plan(org_id, data.plan_id)
            if plan is None:
                raise NotFoundError("Plan", data.plan_id)
            plan_name = plan.name

        values = {
            "subscriber_id": data.subscriber_id,
            "plan_id": data.plan_id,
            "price": data.price,
            "start_date": data.start_date,
            "end_date": data.end_date,
            "status": data.status or "active",
            "payment_status": data.payment_status or "unpaid",
            "notes": data.notes,
        }
        subscription = self._insert_with_retry(org_id, values)

        tag = renewal_tag(subscription.renewal_count)
        action = ActivityActions.SUBSCRIPTION_RENEWED if tag == RENEWAL_TAG_RENEWAL else ActivityActions.SUBSCRIPTION_CREATED
        logger.info(f"Subscription {subscription.id} created for subscriber {data.subscriber_id} "
                    f"({tag}, renewal_count={subscription.renewal_count})")
        self._record(org_id, action, subscription.id, {
            **values,
            "type": tag,
            "renewal_count": subscription.renewal_count,
            "plan_name": plan_name,
        }, user_id)
        return subscription

    def expire_due_subscriptions(self, org_id: int, today: Optional[date] = None) -> int:
        today = today or self.today()
        changed = self.source.expire_due(org_id, today)
        if changed:
            logger.info(f"Expired {changed} subscriptions in organization {org_id}")
        return changed

    def get_subscription(self, org_id: int, subscription_id: int) -> SubscriptionRead:
        subscription = self.source.get(org_id, subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription", subscription_id)
        return subscription

    def update_subscription(
            self,
            org_id: int,
            subscription_id: int,
            data: SubscriptionUpdate,
            user_id: Optional[int] = None
    ) -> SubscriptionRead:
        existing = self.get_subscription(org_id, subscription_id)
        changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None or key == "notes"}

        # Transitions start from the status the row is listed with, which may be expired before the sweep runs.
        current_status = auto_expire([existing], self.today())[0].status
        new_status = changes.get("status")
        if new_status is not None and not can_transition(current_status, new_status):
            raise ValidationError.for_field("status", f"Cannot change status from {current_status} to {new_status}")
        new_end_date = changes.get("end_date")
        if new_end_date is not None and new_end_date < existing.start_date:
            raise ValidationError.for_field("end_date", "end_date must not be before start_date")

        if not changes:
            return existing
        if new_status is None and current_status != existing.status:
            changes["status"] = current_status

        updated = self.source.update(org_id, subscription_id, changes)
        if updated is None:
            raise NotFoundError("Subscription", subscription_id)

        cancelled = new_status == "cancelled" and current_status != "cancelled"
        action = ActivityActions.SUBSCRIPTION_CANCELLED if cancelled else ActivityActions.SUBSCRIPTION_UPDATED
        self._record(org_id, action, subscription_id, changes, user_id)
        return updated

    def delete_subscription(self, org_id: int, subscription_id: int, user_id: Optional[int] = None) -> None:
        existing = self.get_subscription(org_id, subscription_id)
        if not self.source.delete(org_id, subscription_id):
            raise NotFoundError("Subscription", subscription_id)
        self._record(org_id, ActivityActions.SUBSCRIPTION_DELETED, subscription_id, {
            "subscriber_id": existing.subscriber_id,
            "renewal_count": existing.renewal_count,
        }, user_id)
