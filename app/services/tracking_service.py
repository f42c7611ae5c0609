"""
Click tracking and one-click unsubscribe for review links
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.models.event import EventType
from app.models.review_request import ReviewRequest, RequestStatus
from app.models.suppression import SuppressionReason, SuppressionSource
from app.services.event_service import log_event
from app.services.suppression_service import add_suppression
from app.services.validation import get_contact_for_channel

logger = logging.getLogger(__name__)

FALLBACK_REDIRECT_URL = "https://google.com/maps"

NOT_FOUND = "not_found"
INACTIVE = "inactive"
OK = "ok"


@dataclass
class TrackingOutcome:
    result: str
    business_name: Optional[str] = None
    customer_first_name: Optional[str] = None
    redirect_url: Optional[str] = None
    repeat: bool = False


def get_by_tracking_uuid(db: Session, tracking_uuid: str) -> Optional[ReviewRequest]:
    return db.query(ReviewRequest).filter(ReviewRequest.tracking_uuid == tracking_uuid).first()


def resolve_redirect_url(request: ReviewRequest) -> str:
    business = request.business
    for candidate in (business.google_review_url, request.review_url, business.website):
        if candidate and candidate.lower().startswith(("http://", "https://")):
            return candidate
    return FALLBACK_REDIRECT_URL


def record_click(
    db: Session,
    tracking_uuid: str,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
    referer: Optional[str] = None,
) -> TrackingOutcome:
    """
    Record a click on a tracking link.

    The first click on a sent request sets clicked_at and status CLICKED.
    Every click is logged as an event; later clicks are flagged as repeats.
    """
    request = get_by_tracking_uuid(db, tracking_uuid)
    if not request:
        logger.warning("Invalid tracking link accessed", extra={"extra_data": {"tracking_uuid": tracking_uuid}})
        return TrackingOutcome(result=NOT_FOUND)

    if not request.is_active or request.status == RequestStatus.OPTED_OUT:
        logger.info(
            "Inactive or opted-out link accessed",
            extra={"extra_data": {"review_request_id": str(request.id), "status": request.status.value}},
        )
        return TrackingOutcome(result=INACTIVE)

    now = datetime.utcnow()
    client = {
        "userAgent": user_agent or "unknown",
        "ipAddress": ip_address or "unknown",
        "referer": referer,
    }
    repeat = request.clicked_at is not None
    previous_click = request.clicked_at

    if not repeat and request.mark_clicked(now):
        if request.status != RequestStatus.COMPLETED:
            request.status = RequestStatus.CLICKED
        request.click_metadata = {**client, "timestamp": now.isoformat()}

    metadata = {"trackingUuid": tracking_uuid, **client}
    if repeat:
        metadata["repeatClick"] = True
        metadata["previousClickAt"] = previous_click.isoformat()
    elif request.sent_at is None:
        metadata["unsentClick"] = True

    log_event(
        db,
        business_id=request.business_id,
        review_request_id=request.id,
        event_type=EventType.REQUEST_CLICKED,
        source="redirect",
        description="Repeat click on review link" if repeat else "Review link clicked",
        metadata=metadata,
        commit=False,
    )
    db.commit()

    redirect_url = resolve_redirect_url(request)
    logger.info(
        "Redirecting to review URL",
        extra={"extra_data": {"review_request_id": str(request.id), "repeat": repeat}},
    )
    return TrackingOutcome(
        result=OK,
        business_name=request.business.name,
        customer_first_name=request.customer.first_name,
        redirect_url=redirect_url,
        repeat=repeat,
    )


def unsubscribe(db: Session, tracking_uuid: str) -> TrackingOutcome:
    """Suppress the request's contact on its channel and mark the request OPTED_OUT"""
    request = get_by_tracking_uuid(db, tracking_uuid)
    if not request:
        return TrackingOutcome(result=NOT_FOUND)

    business_name = request.business.name
    contact = get_contact_for_channel(request.customer.email, request.customer.phone, request.channel)
    if contact:
        add_suppression(
            db,
            business_id=request.business_id,
            contact=contact,
            channel=request.channel,
            reason=SuppressionReason.UNSUBSCRIBE,
            source=SuppressionSource.SYSTEM,
            notes="Unsubscribed via review link",
        )

    if request.status != RequestStatus.OPTED_OUT:
        request.status = RequestStatus.OPTED_OUT
        log_event(
            db,
            business_id=request.business_id,
            review_request_id=request.id,
            event_type=EventType.REQUEST_OPTED_OUT,
            source="redirect",
            description="Recipient unsubscribed via review link",
            metadata={"trackingUuid": tracking_uuid},
            commit=False,
        )
        db.commit()

    logger.info("Recipient unsubscribed", extra={"extra_data": {"review_request_id": str(request.id)}})
    return TrackingOutcome(result=OK, business_name=business_name)
