# src/dashboard/schemas.py
from pydantic import BaseModel
from decimal import Decimal
from typing import List
from subscription.schemas import SubscriptionRead

class DashboardStats(BaseModel):
    """Schema for the dashboard summary."""
    total_subscribers: int
    active_subscriptions: int
    monthly_revenue: Decimal
    unpaid_count: int
    expiring_subscriptions: List[SubscriptionRead]
    data_source: str
