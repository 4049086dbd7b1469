# src/subscribers/models.py
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime
from typing import Optional

class Subscriber(Base):
    """Represents an organization's customer."""
    __tablename__ = "subscribers"

    id: int = Column(Integer, primary_key=True, index=True)
    organization_id: int = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name: str = Column(String, nullable=False)
    email: Optional[str] = Column(String, nullable=True)
    phone: Optional[str] = Column(String, nullable=True)
    address: Optional[str] = Column(Text, nullable=True)
    notes: Optional[str] = Column(Text, nullable=True)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    subscriptions = relationship("Subscription", back_populates="subscriber", cascade="all, delete-orphan")
