# src/subscribers/schemas.py
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional

class SubscriberCreate(BaseModel):
    """Schema for creating a subscriber."""
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None

class SubscriberUpdate(BaseModel):
    """Schema for updating a subscriber. Only the fields sent are changed."""
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

class SubscriberBrief(BaseModel):
    """Subscriber fields embedded in subscription rows."""
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True

class SubscriberResponse(BaseModel):
    """Schema for subscriber response."""
    id: int
    organization_id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    notes: Optional[str]
    is_active: bool
    created_at: datetime
    subscription_count: int = 0

    class Config:
        from_attributes = True
