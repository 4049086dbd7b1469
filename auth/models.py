# src/auth/models.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime

class Organization(Base):
    """Represents a tenant. Every other entity belongs to exactly one."""
    __tablename__ = "organizations"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String, nullable=False)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    users = relationship("User", back_populates="organization")

class User(Base):
    """Represents a dashboard operator."""
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    organization_id: int = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    email: str = Column(String, unique=True, index=True, nullable=False)
    password_hash: str = Column(String, nullable=False)
    role: str = Column(String, nullable=False, default="user")  # admin, user
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    organization = relationship("Organization", back_populates="users")
    activity = relationship("ActivityLog", back_populates="user")

class ActivityLog(Base):
    """Represents an audit entry for an operator action."""
    __tablename__ = "activity_logs"

    id: int = Column(Integer, primary_key=True, index=True)
    organization_id: int = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=True)
    action: str = Column(String, nullable=False)
    entity_type: str = Column(String, nullable=False)
    entity_id: int = Column(Integer, nullable=True)
    details: dict = Column(JSON, nullable=True)
    created_at: datetime = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User", back_populates="activity")
