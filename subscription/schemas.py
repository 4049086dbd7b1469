# src/subscription/schemas.py
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional
from subscribers.schemas import SubscriberBrief
from plans.schemas import PlanBrief

SubscriptionStatus = Literal["active", "expired", "cancelled", "pending"]
PaymentStatus = Literal["paid", "unpaid", "partial"]

class SubscriptionCreate(BaseModel):
    """Schema for creating a subscription or renewing one."""
    subscriber_id: int
    plan_id: Optional[int] = None
    price: Decimal = Field(..., gt=0)
    start_date: date
    end_date: date
    status: Optional[Literal["active", "pending"]] = None
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = None

class SubscriptionUpdate(BaseModel):
    """Schema for updating a subscription. Only the fields sent are changed."""
    status: Optional[SubscriptionStatus] = None
    payment_status: Optional[PaymentStatus] = None
    price: Optional[Decimal] = Field(None, gt=0)
    end_date: Optional[date] = None
    notes: Optional[str] = None

class SubscriptionRead(BaseModel):
    """A subscription row as consumed by the reconciler and returned by the API."""
    id: int
    organization_id: int
    subscriber_id: int
    plan_id: Optional[int] = None
    price: Decimal
    start_date: date
    end_date: date
    status: str
    payment_status: str
    renewal_count: int
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    subscriber: Optional[SubscriberBrief] = None
    plan: Optional[PlanBrief] = None

    class Config:
        from_attributes = True

class SubscriptionFilters(BaseModel):
    """Filters accepted by the subscription list."""
    status: Optional[str] = None
    payment_status: Optional[str] = None
    subscriber_id: Optional[int] = None
    search: Optional[str] = None
    expiring_soon: bool = False

class SubscriptionPage(BaseModel):
    """One page of the reconciled subscription list."""
    rows: List[SubscriptionRead]
    total: int
    page: int
    limit: int
    total_pages: int
