"""
Review request creation and listing
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFound, ValidationError
from app.models.business import Business
from app.models.event import EventType
from app.models.review_request import ReviewRequest, RequestChannel, RequestStatus
from app.services.customer_service import get_customer
from app.services.event_service import log_event
from app.services.validation import can_send_to_customer, generate_tracking_url

logger = logging.getLogger(__name__)


def create_review_request(
    db: Session,
    business_id: uuid.UUID,
    customer_id: uuid.UUID,
    channel: RequestChannel,
    message_content: str,
    subject: Optional[str] = None,
    review_url: Optional[str] = None,
    scheduled_for: Optional[datetime] = None,
) -> ReviewRequest:
    """
    Create a QUEUED review request with a fresh tracking link.

    The review URL defaults to the business's Google review URL.
    """
    customer = get_customer(db, business_id, customer_id)
    if not customer:
        raise NotFound("Customer")

    if not can_send_to_customer(customer.email, customer.phone, channel):
        raise ValidationError(f"Customer has no valid {channel.value.lower()} contact")

    business = db.query(Business).filter(Business.id == business_id).first()
    review_url = review_url or (business.google_review_url if business else None)
    if not review_url:
        raise ValidationError("reviewUrl is required when the business has no Google review URL")

    tracking_uuid = str(uuid.uuid4())
    request = ReviewRequest(
        business_id=business_id,
        customer_id=customer.id,
        channel=channel,
        status=RequestStatus.QUEUED,
        subject=subject,
        message_content=message_content,
        review_url=review_url,
        tracking_uuid=tracking_uuid,
        tracking_url=generate_tracking_url(settings.APP_URL, tracking_uuid),
        scheduled_for=scheduled_for,
        retry_count=0,
        is_active=True,
    )
    db.add(request)
    db.flush()

    log_event(
        db,
        business_id=business_id,
        review_request_id=request.id,
        event_type=EventType.REQUEST_CREATED,
        source="system",
        description=f"{channel.value} review request created",
        metadata={"customerId": str(customer.id)},
        commit=False,
    )
    db.commit()
    db.refresh(request)

    logger.info(
        "Review request created",
        extra={"extra_data": {
            "business_id": str(business_id),
            "review_request_id": str(request.id),
            "channel": channel.value,
        }},
    )
    return request


def list_review_requests(
    db: Session,
    business_id: uuid.UUID,
    page: int = 1,
    limit: int = 20,
    status: Optional[RequestStatus] = None,
    channel: Optional[RequestChannel] = None,
    customer_id: Optional[uuid.UUID] = None,
) -> Tuple[List[ReviewRequest], int]:
    query = db.query(ReviewRequest).filter(
        ReviewRequest.business_id == business_id,
        ReviewRequest.is_active == True,
    )
    if status is not None:
        query = query.filter(ReviewRequest.status == status)
    if channel is not None:
        query = query.filter(ReviewRequest.channel == channel)
    if customer_id is not None:
        query = query.filter(ReviewRequest.customer_id == customer_id)

    total = query.count()
    requests = (
        query.order_by(ReviewRequest.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return requests, total


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_review_request(request: ReviewRequest) -> Dict[str, Any]:
    customer = request.customer
    return {
        "id": str(request.id),
        "businessId": str(request.business_id),
        "customerId": str(request.customer_id),
        "customer": {
            "firstName": customer.first_name,
            "lastName": customer.last_name,
            "email": customer.email,
            "phone": customer.phone,
        } if customer else None,
        "channel": request.channel.value,
        "status": request.status.value,
        "subject": request.subject,
        "messageContent": request.message_content,
        "reviewUrl": request.review_url,
        "trackingUuid": request.tracking_uuid,
        "trackingUrl": request.tracking_url,
        "externalId": request.external_id,
        "errorMessage": request.error_message,
        "retryCount": request.retry_count,
        "scheduledFor": _iso(request.scheduled_for),
        "sentAt": _iso(request.sent_at),
        "deliveredAt": _iso(request.delivered_at),
        "clickedAt": _iso(request.clicked_at),
        "createdAt": _iso(request.created_at),
    }
