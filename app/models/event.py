"""
Event model (append-only history of review requests and suppressions)
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from app.core.database import Base, JSONType


class EventType(str, enum.Enum):
    REQUEST_CREATED = "REQUEST_CREATED"
    REQUEST_SENT = "REQUEST_SENT"
    REQUEST_FAILED = "REQUEST_FAILED"
    REQUEST_DELIVERED = "REQUEST_DELIVERED"
    REQUEST_CLICKED = "REQUEST_CLICKED"
    REQUEST_BOUNCED = "REQUEST_BOUNCED"
    REQUEST_OPTED_OUT = "REQUEST_OPTED_OUT"
    EMAIL_PROCESSED = "EMAIL_PROCESSED"
    EMAIL_OPENED = "EMAIL_OPENED"
    SUPPRESSION_ADDED = "SUPPRESSION_ADDED"


class Event(Base):
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id"), nullable=False, index=True)
    review_request_id = Column(Uuid, ForeignKey("review_requests.id"), nullable=True, index=True)
    type = Column(SQLEnum(EventType), nullable=False, index=True)
    source = Column(String, nullable=False)  # system, sendgrid, twilio, webhook, redirect, manual
    description = Column(Text, nullable=True)
    event_metadata = Column("metadata", JSONType, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Relationships
    review_request = relationship("ReviewRequest", back_populates="events")
