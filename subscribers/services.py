# src/subscribers/services.py
import logging

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional, List
from subscribers.models import Subscriber
from subscribers.schemas import SubscriberCreate, SubscriberUpdate, SubscriberResponse
from subscription.models import Subscription
from auth.services import log_activity, ActivityActions
from exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)

# Columns that may not be cleared through an update.
REQUIRED_FIELDS = ("name", "is_active")

class SubscriberService:
    @staticmethod
    def _with_count(subscriber: Subscriber, count: int) -> SubscriberResponse:
        return SubscriberResponse.from_orm(subscriber).model_copy(update={"subscription_count": count})

    @staticmethod
    def _get_model(org_id: int, subscriber_id: int, db: Session) -> Subscriber:
        subscriber = db.query(Subscriber).filter(
            Subscriber.id == subscriber_id,
            Subscriber.organization_id == org_id
        ).first()
        if not subscriber:
            raise NotFoundError("Subscriber", subscriber_id)
        return subscriber

    @staticmethod
    def _count(org_id: int, subscriber_id: int, db: Session) -> int:
        return db.query(Subscription).filter(
            Subscription.organization_id == org_id,
            Subscription.subscriber_id == subscriber_id
        ).count()

    @staticmethod
    def create_subscriber(org_id: int, data: SubscriberCreate, db: Session, user_id: Optional[int] = None) -> SubscriberResponse:
        subscriber = Subscriber(organization_id=org_id, **data.model_dump())
        try:
            db.add(subscriber)
            db.commit()
            db.refresh(subscriber)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create subscriber in organization {org_id}: {str(e)}", exc_info=True)
            raise StorageError()

        log_activity(db, org_id, ActivityActions.SUBSCRIBER_CREATED, "subscriber",
                     entity_id=subscriber.id, details={"name": subscriber.name}, user_id=user_id)
        return SubscriberService._with_count(subscriber, 0)

    @staticmethod
    def get_subscriber(org_id: int, subscriber_id: int, db: Session) -> SubscriberResponse:
        subscriber = SubscriberService._get_model(org_id, subscriber_id, db)
        return SubscriberService._with_count(subscriber, SubscriberService._count(org_id, subscriber_id, db))

    @staticmethod
    def get_subscribers(org_id: int, db: Session, search: Optional[str] = None) -> List[SubscriberResponse]:
        query = db.query(Subscriber).filter(Subscriber.organization_id == org_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Subscriber.name.ilike(pattern), Subscriber.email.ilike(pattern)))
        subscribers = query.order_by(Subscriber.created_at.desc(), Subscriber.id.desc()).all()

        counts = dict(
            db.query(Subscription.subscriber_id, func.count(Subscription.id))
            .filter(Subscription.organization_id == org_id)
            .group_by(Subscription.subscriber_id)
            .all()
        )
        return [SubscriberService._with_count(s, counts.get(s.id, 0)) for s in subscribers]

    @staticmethod
    def update_subscriber(
            org_id: int,
            subscriber_id: int,
            data: SubscriberUpdate,
            db: Session,
            user_id: Optional[int] = None
    ) -> SubscriberResponse:
        subscriber = SubscriberService._get_model(org_id, subscriber_id, db)
        changes = {
            key: value for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in REQUIRED_FIELDS
        }
        try:
            for key, value in changes.items():
                setattr(subscriber, key, value)
            db.commit()
            db.refresh(subscriber)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update subscriber {subscriber_id}: {str(e)}", exc_info=True)
            raise StorageError()

        log_activity(db, org_id, ActivityActions.SUBSCRIBER_UPDATED, "subscriber",
                     entity_id=subscriber_id, details=jsonable_encoder(changes), user_id=user_id)
        return SubscriberService._with_count(subscriber, SubscriberService._count(org_id, subscriber_id, db))

    @staticmethod
    def delete_subscriber(org_id: int, subscriber_id: int, db: Session, user_id: Optional[int] = None) -> None:
        """Delete a subscriber together with its subscription history."""
        subscriber = SubscriberService._get_model(org_id, subscriber_id, db)
        name = subscriber.name
        try:
            db.delete(subscriber)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to delete subscriber {subscriber_id}: {str(e)}", exc_info=True)
            raise StorageError()

        logger.info(f"Deleted subscriber {subscriber_id} from organization {org_id}")
        log_activity(db, org_id, ActivityActions.SUBSCRIBER_DELETED, "subscriber",
                     entity_id=subscriber_id, details={"name": name}, user_id=user_id)
