# src/auth/schemas.py
from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Any, Dict, Optional

class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str

class UserResponse(BaseModel):
    """Schema for user response."""
    id: int
    organization_id: int
    email: str
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    """Schema for token response."""
    access_token: str
    token_type: str

class ActivityLogResponse(BaseModel):
    """Schema for an activity log entry."""
    id: int
    organization_id: int
    user_id: Optional[int]
    action: str
    entity_type: str
    entity_id: Optional[int]
    details: Optional[Dict[str, Any]]
    created_at: datetime

    class Config:
        from_attributes = True
