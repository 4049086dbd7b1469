# src/subscribers/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from subscribers.services import SubscriberService
from subscribers.schemas import SubscriberCreate, SubscriberUpdate, SubscriberResponse
from auth.routes import get_current_user
from auth.models import User
from database import get_db

router = APIRouter(prefix="/subscribers", tags=["subscribers"])

@router.get("/", response_model=List[SubscriberResponse])
def get_subscribers(
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the organization's subscribers."""
    return SubscriberService.get_subscribers(current_user.organization_id, db, search=search)

@router.post("/", response_model=SubscriberResponse, status_code=201)
def create_subscriber(
    subscriber_data: SubscriberCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a subscriber."""
    return SubscriberService.create_subscriber(current_user.organization_id, subscriber_data, db, user_id=current_user.id)

@router.get("/{subscriber_id}", response_model=SubscriberResponse)
def get_subscriber(
    subscriber_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Retrieve a subscriber."""
    return SubscriberService.get_subscriber(current_user.organization_id, subscriber_id, db)

@router.put("/{subscriber_id}", response_model=SubscriberResponse)
def update_subscriber(
    subscriber_id: int,
    subscriber_data: SubscriberUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a subscriber's contact details or active flag."""
    return SubscriberService.update_subscriber(current_user.organization_id, subscriber_id, subscriber_data, db, user_id=current_user.id)

@router.delete("/{subscriber_id}")
def delete_subscriber(
    subscriber_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    SubscriberService.delete_subscriber(current_user.organization_id, subscriber_id, db, user_id=current_user.id)
    return {"message": "Subscriber deleted"}
