# src/subscription/models.py
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Numeric, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

class Subscription(Base):
    """Represents one subscription period of a subscriber. Renewals are new rows."""
    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("subscriber_id", "renewal_count", name="uq_subscriptions_subscriber_renewal"),
        CheckConstraint("end_date >= start_date", name="ck_subscriptions_date_order"),
    )

    id: int = Column(Integer, primary_key=True, index=True)
    organization_id: int = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    subscriber_id: int = Column(Integer, ForeignKey("subscribers.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id: Optional[int] = Column(Integer, ForeignKey("plans.id", ondelete="SET NULL"), nullable=True)
    price: Decimal = Column(Numeric(12, 2), nullable=False)
    start_date: date = Column(Date, nullable=False)
    end_date: date = Column(Date, nullable=False, index=True)
    status: str = Column(String, nullable=False, default="active")  # active, expired, cancelled, pending
    payment_status: str = Column(String, nullable=False, default="unpaid")  # paid, unpaid, partial
    renewal_count: int = Column(Integer, nullable=False, default=1)
    notes: Optional[str] = Column(Text, nullable=True)
    created_at: datetime = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: datetime = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    subscriber = relationship("Subscriber", back_populates="subscriptions")
    plan = relationship("Plan", back_populates="subscriptions")
