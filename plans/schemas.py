# src/plans/schemas.py
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

PeriodUnit = Literal["day", "week", "month", "year"]

class PlanCreate(BaseModel):
    """Schema for creating a plan."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    period_value: int = Field(1, gt=0)
    period_unit: PeriodUnit = "month"
    is_active: bool = True

class PlanUpdate(BaseModel):
    """Schema for updating a plan. Only the fields sent are changed."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    period_value: Optional[int] = Field(None, gt=0)
    period_unit: Optional[PeriodUnit] = None
    is_active: Optional[bool] = None

class PlanBrief(BaseModel):
    """Plan fields embedded in subscription rows."""
    id: int
    name: str
    price: Decimal

    class Config:
        from_attributes = True

class PlanResponse(BaseModel):
    """Schema for plan response."""
    id: int
    organization_id: int
    name: str
    description: Optional[str]
    price: Decimal
    period_value: int
    period_unit: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
