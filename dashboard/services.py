# src/dashboard/services.py
from datetime import date
from decimal import Decimal
from typing import Optional
from dashboard.schemas import DashboardStats
from subscription.reconciler import auto_expire, apply_filters, sort_rows
from subscription.schemas import SubscriptionFilters
from subscription.services import utc_today
from subscription.sources import SubscriptionSource
from config import settings

class DashboardService:
    def __init__(self, source: SubscriptionSource, data_source: str = "real"):
        self.source = source
        self.data_source = data_source

    def get_stats(self, org_id: int, today: Optional[date] = None) -> DashboardStats:
        """Summarize the organization's subscriptions as of today."""
        today = today or utc_today()
        rows = auto_expire(self.source.fetch(org_id), today)
        active = [r for r in rows if r.status == "active"]

        expiring = sort_rows(apply_filters(rows, SubscriptionFilters(expiring_soon=True), today), expiring_soon=True)

        return DashboardStats(
            total_subscribers=self.source.count_active_subscribers(org_id),
            active_subscriptions=len(active),
            monthly_revenue=sum((r.price for r in active), Decimal("0")),
            unpaid_count=len([r for r in rows if r.payment_status == "unpaid"]),
            expiring_subscriptions=expiring[:settings.DASHBOARD_EXPIRING_LIMIT],
            data_source=self.data_source,
        )
