# src/plans/models.py
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime
from decimal import Decimal
from typing import Optional

class Plan(Base):
    """Represents a subscription plan template."""
    __tablename__ = "plans"

    id: int = Column(Integer, primary_key=True, index=True)
    organization_id: int = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name: str = Column(String, nullable=False)
    description: Optional[str] = Column(Text, nullable=True)
    price: Decimal = Column(Numeric(12, 2), nullable=False)
    period_value: int = Column(Integer, nullable=False, default=1)
    period_unit: str = Column(String, nullable=False, default="month")  # day, week, month, year
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    subscriptions = relationship("Subscription", back_populates="plan")
