# src/scheduler/tasks.py
import logging
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
from database import SessionLocal
from auth.models import Organization
from subscription.services import SubscriptionService
from subscription.sources import SqlSubscriptionSource
from config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def expire_due_subscriptions(db: Optional[Session] = None) -> int:
    """Run the expiry sweep for every active organization."""
    logger.info("Starting expire_due_subscriptions task")
    owns_session = db is None
    if owns_session:
        db = SessionLocal()
    total = 0
    try:
        service = SubscriptionService(SqlSubscriptionSource(db))
        organization_ids = [org_id for (org_id,) in db.query(Organization.id).filter(Organization.is_active == True).all()]
        for org_id in organization_ids:
            try:
                total += service.expire_due_subscriptions(org_id)
            except Exception as e:
                logger.error(f"Expiry sweep failed for organization {org_id}: {str(e)}")
    except SQLAlchemyError as e:
        logger.error(f"Error in expire_due_subscriptions: {str(e)}")
    finally:
        if owns_session:
            db.close()
    logger.info(f"Finished expire_due_subscriptions task, {total} subscriptions expired")
    return total

def start_scheduler() -> BackgroundScheduler:
    """Start the background scheduler."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(expire_due_subscriptions, 'interval', minutes=settings.EXPIRY_SWEEP_INTERVAL_MINUTES)
    scheduler.start()
    return scheduler
