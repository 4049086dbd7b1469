# src/activity/routes.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from auth.models import User
from auth.routes import get_current_user
from auth.schemas import ActivityLogResponse
from auth.services import get_activity_logs
from database import get_db

router = APIRouter(prefix="/activity", tags=["activity"])

@router.get("/", response_model=List[ActivityLogResponse])
def list_activity(
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    subscriber_id: Optional[int] = None,
    limit: int = Query(50, gt=0, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the organization's activity, newest first. Filter by subscriber to build a subscription history."""
    logs = get_activity_logs(
        db,
        current_user.organization_id,
        entity_type=entity_type,
        entity_id=entity_id,
        subscriber_id=subscriber_id,
        limit=limit,
    )
    return [ActivityLogResponse.from_orm(log) for log in logs]
