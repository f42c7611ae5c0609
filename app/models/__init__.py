"""
SQLAlchemy models
"""
from app.models.business import Business, User
from app.models.customer import Customer
from app.models.review_request import ReviewRequest, RequestChannel, RequestStatus
from app.models.suppression import Suppression, SuppressionReason, SuppressionSource
from app.models.event import Event, EventType

__all__ = [
    "Business",
    "User",
    "Customer",
    "ReviewRequest",
    "RequestChannel",
    "RequestStatus",
    "Suppression",
    "SuppressionReason",
    "SuppressionSource",
    "Event",
    "EventType",
]
