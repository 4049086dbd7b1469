# src/dashboard/routes.py
from fastapi import APIRouter, Depends
from dashboard.services import DashboardService
from dashboard.schemas import DashboardStats
from subscription.routes import get_subscription_source
from subscription.sources import SubscriptionSource
from auth.routes import get_current_user
from auth.models import User
from config import settings

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

@router.get("/", response_model=DashboardStats)
def get_dashboard(
    source: SubscriptionSource = Depends(get_subscription_source),
    current_user: User = Depends(get_current_user)
):
    """Dashboard counters and the subscriptions expiring this week."""
    service = DashboardService(source, data_source="demo" if settings.DEMO_MODE else "real")
    return service.get_stats(current_user.organization_id)
