"""
Review request model
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer, Text, Uuid, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from app.core.database import Base, JSONType


class RequestChannel(str, enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"


class RequestStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    CLICKED = "CLICKED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    BOUNCED = "BOUNCED"
    OPTED_OUT = "OPTED_OUT"


# Statuses counted as "sent" by analytics
SENT_STATUSES = (
    RequestStatus.SENT,
    RequestStatus.DELIVERED,
    RequestStatus.CLICKED,
    RequestStatus.COMPLETED,
)


class ReviewRequest(Base):
    __tablename__ = "review_requests"
    __table_args__ = (
        CheckConstraint("delivered_at IS NULL OR sent_at IS NOT NULL", name="ck_review_requests_delivered_after_sent"),
        CheckConstraint("clicked_at IS NULL OR sent_at IS NOT NULL", name="ck_review_requests_clicked_after_sent"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id"), nullable=False, index=True)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False, index=True)
    channel = Column(SQLEnum(RequestChannel), nullable=False)
    status = Column(SQLEnum(RequestStatus), nullable=False, default=RequestStatus.QUEUED, index=True)
    subject = Column(String, nullable=True)
    message_content = Column(Text, nullable=False)
    review_url = Column(String, nullable=False)
    tracking_uuid = Column(String, nullable=False, unique=True, index=True)
    tracking_url = Column(String, nullable=False)
    external_id = Column(String, nullable=True, index=True)  # SendGrid message id / Twilio SID
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    scheduled_for = Column(DateTime, nullable=True)

    # Lifecycle timestamps: set once, never cleared
    sent_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    clicked_at = Column(DateTime, nullable=True)
    click_metadata = Column(JSONType, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    business = relationship("Business", back_populates="review_requests")
    customer = relationship("Customer", back_populates="review_requests")
    events = relationship("Event", back_populates="review_request")

    def mark_sent(self, at: datetime) -> None:
        if self.sent_at is None:
            self.sent_at = at

    def mark_delivered(self, at: datetime) -> bool:
        """Record delivery; returns False when the request was never sent"""
        if self.sent_at is None:
            return False
        if self.delivered_at is None:
            self.delivered_at = at
        return True

    def mark_clicked(self, at: datetime) -> bool:
        """Record the first click; returns False when the request was never sent"""
        if self.sent_at is None:
            return False
        if self.clicked_at is None:
            self.clicked_at = at
        return True
