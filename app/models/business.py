"""
Business (tenant) and User models
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from app.core.database import Base, JSONType


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    website = Column(String, nullable=True)
    address = Column(String, nullable=True)
    google_place_id = Column(String, nullable=True, index=True)
    google_review_url = Column(String, nullable=True)
    settings = Column(JSONType, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Usage counters
    sms_credits_used = Column(Integer, nullable=False, default=0)
    sms_credits_limit = Column(Integer, nullable=False, default=100)
    email_credits_used = Column(Integer, nullable=False, default=0)
    email_credits_limit = Column(Integer, nullable=False, default=500)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    users = relationship("User", back_populates="business")
    customers = relationship("Customer", back_populates="business")
    review_requests = relationship("ReviewRequest", back_populates="business")
    suppressions = relationship("Suppression", back_populates="business")


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    clerk_user_id = Column(String, nullable=False, unique=True, index=True)
    email = Column(String, nullable=False, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    business_id = Column(Uuid, ForeignKey("businesses.id"), nullable=True, index=True)
    notification_preferences = Column(JSONType, nullable=True)
    ui_preferences = Column(JSONType, nullable=True)
    last_active_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    business = relationship("Business", back_populates="users")
