# src/subscription/routes.py
from functools import partial
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from subscription.services import SubscriptionService
from subscription.schemas import SubscriptionCreate, SubscriptionUpdate, SubscriptionRead, SubscriptionFilters, SubscriptionPage
from subscription.sources import SubscriptionSource, SqlSubscriptionSource
from subscription.fixtures import demo_source_for
from auth.routes import get_current_user
from auth.services import log_activity
from auth.models import User
from config import settings
from database import get_db

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])

def get_subscription_source(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> SubscriptionSource:
    """Pick the row source for this request: fixture data in demo mode, the database otherwise."""
    if settings.DEMO_MODE:
        return demo_source_for(current_user.organization_id)
    return SqlSubscriptionSource(db)

def get_subscription_service(
    source: SubscriptionSource = Depends(get_subscription_source),
    db: Session = Depends(get_db)
) -> SubscriptionService:
    return SubscriptionService(source, record_activity=partial(log_activity, db))

@router.get("/", response_model=SubscriptionPage)
def list_subscriptions(
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
    subscriber_id: Optional[int] = None,
    search: Optional[str] = None,
    expiring_soon: bool = False,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    service: SubscriptionService = Depends(get_subscription_service),
    current_user: User = Depends(get_current_user)
):
    """List subscriptions with the current row per subscriber, unless viewing history or unpaid rows."""
    filters = SubscriptionFilters(
        status=status,
        payment_status=payment_status,
        subscriber_id=subscriber_id,
        search=search,
        expiring_soon=expiring_soon,
    )
    return service.list_subscriptions(current_user.organization_id, filters, page=page, limit=limit)

@router.post("/", response_model=SubscriptionRead, status_code=201)
def create_subscription(
    subscription_data: SubscriptionCreate,
    service: SubscriptionService = Depends(get_subscription_service),
    current_user: User = Depends(get_current_user)
):
    """Create a subscription or renew an existing subscriber."""
    return service.create_or_renew_subscription(current_user.organization_id, subscription_data, user_id=current_user.id)

@router.post("/expire")
def expire_subscriptions(
    service: SubscriptionService = Depends(get_subscription_service),
    current_user: User = Depends(get_current_user)
):
    """Mark every active subscription past its end date as expired."""
    return {"expired": service.expire_due_subscriptions(current_user.organization_id)}

@router.get("/{subscription_id}", response_model=SubscriptionRead)
def get_subscription(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
    current_user: User = Depends(get_current_user)
):
    """Retrieve a subscription as stored."""
    return service.get_subscription(current_user.organization_id, subscription_id)

@router.put("/{subscription_id}", response_model=SubscriptionRead)
def update_subscription(
    subscription_id: int,
    subscription_data: SubscriptionUpdate,
    service: SubscriptionService = Depends(get_subscription_service),
    current_user: User = Depends(get_current_user)
):
    """Update status, payment status, price, end date or notes."""
    return service.update_subscription(current_user.organization_id, subscription_id, subscription_data, user_id=current_user.id)

@router.delete("/{subscription_id}")
def delete_subscription(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
    current_user: User = Depends(get_current_user)
):
    service.delete_subscription(current_user.organization_id, subscription_id, user_id=current_user.id)
    return {"message": "Subscription deleted"}
