# src/auth/services.py
import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from jose import jwt
from passlib.context import CryptContext
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from auth.models import User, ActivityLog
from subscription.models import Subscription
from config import settings

logger = logging.getLogger(__name__)


class ActivityActions:
    """Action names recorded in the activity log."""
    SUBSCRIBER_CREATED = "subscriber.created"
    SUBSCRIBER_UPDATED = "subscriber.updated"
    SUBSCRIBER_DELETED = "subscriber.deleted"
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_RENEWED = "subscription.renewed"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"
    SUBSCRIPTION_DELETED = "subscription.deleted"
    PLAN_CREATED = "plan.created"
    PLAN_UPDATED = "plan.updated"
    PLAN_DELETED = "plan.deleted"


class AuthService:
    pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        return AuthService.pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return AuthService.pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token."""
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        return encoded_jwt

    @staticmethod
    def get_user_by_email(email: str, db: Session) -> Optional[User]:
        """Retrieve a user by email."""
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def authenticate_user(email: str, password: str, db: Session) -> Optional[User]:
        user = AuthService.get_user_by_email(email, db)
        if not user or not AuthService.verify_password(password, user.password_hash):
            return None
        return user


def log_activity(
        db: Session,
        organization_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        user_id: Optional[int] = None
) -> None:
    """Write an activity entry. A failure here never fails the calling operation."""
    try:
        db.add(ActivityLog(
            organization_id=organization_id,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to log activity {action} for {entity_type} {entity_id}: {str(e)}", exc_info=True)


def get_activity_logs(
        db: Session,
        organization_id: int,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        subscriber_id: Optional[int] = None,
        limit: int = 50
) -> List[ActivityLog]:
    """Newest activity first. subscriber_id selects the subscriber's own entries and those of its subscriptions."""
    query = db.query(ActivityLog).filter(ActivityLog.organization_id == organization_id)
    if entity_type:
        query = query.filter(ActivityLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(ActivityLog.entity_id == entity_id)
    if subscriber_id is not None:
        subscription_ids = [
            row.id for row in db.query(Subscription.id).filter(
                Subscription.organization_id == organization_id,
                Subscription.subscriber_id == subscriber_id
            )
        ]
        scope = and_(ActivityLog.entity_type == "subscriber", ActivityLog.entity_id == subscriber_id)
        if subscription_ids:
            scope = or_(scope, and_(
                ActivityLog.entity_type == "subscription",
                ActivityLog.entity_id.in_(subscription_ids)
            ))
        query = query.filter(scope)
    return query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
