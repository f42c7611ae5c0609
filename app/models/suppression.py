"""
Suppression (contact denylist) model
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from app.core.database import Base
from app.models.review_request import RequestChannel


class SuppressionReason(str, enum.Enum):
    USER_REQUEST = "USER_REQUEST"
    BOUNCE = "BOUNCE"
    SPAM = "SPAM"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    MANUAL = "MANUAL"


class SuppressionSource(str, enum.Enum):
    MANUAL = "manual"
    WEBHOOK = "webhook"
    SYSTEM = "system"


class Suppression(Base):
    __tablename__ = "suppressions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id"), nullable=False, index=True)
    contact = Column(String, nullable=False, index=True)  # lower-cased email or phone
    channel = Column(SQLEnum(RequestChannel), nullable=True)  # NULL suppresses every channel
    reason = Column(SQLEnum(SuppressionReason), nullable=False)
    source = Column(SQLEnum(SuppressionSource), nullable=False, default=SuppressionSource.MANUAL)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Relationships
    business = relationship("Business", back_populates="suppressions")
