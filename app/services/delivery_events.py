"""
SendGrid event webhook processing
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.event import EventType
from app.models.review_request import ReviewRequest, RequestChannel, RequestStatus
from app.models.suppression import SuppressionReason, SuppressionSource
from app.services.event_service import log_event
from app.services.suppression_service import add_suppression

logger = logging.getLogger(__name__)

SUPPORTED_EVENTS = {"processed", "delivered", "open", "click", "bounce", "dropped", "spamreport", "unsubscribe"}


def find_request_for_event(db: Session, event: Dict[str, Any]) -> Optional[ReviewRequest]:
    """Match by the requestId custom arg, falling back to the SendGrid message id"""
    request_id = event.get("requestId")
    if request_id:
        try:
            request_uuid = uuid.UUID(str(request_id))
        except ValueError:
            request_uuid = None
        if request_uuid:
            request = db.query(ReviewRequest).filter(ReviewRequest.id == request_uuid).first()
            if request:
                return request

    sg_message_id = event.get("sg_message_id")
    if sg_message_id:
        # sg_message_id is "<X-Message-Id>.<filter suffix>"
        external_id = str(sg_message_id).split(".")[0]
        return db.query(ReviewRequest).filter(ReviewRequest.external_id == external_id).first()
    return None


def _event_time(event: Dict[str, Any]) -> datetime:
    timestamp = event.get("timestamp")
    try:
        return datetime.utcfromtimestamp(int(timestamp))
    except (TypeError, ValueError, OverflowError, OSError):
        return datetime.utcnow()


def process_sendgrid_event(db: Session, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply one SendGrid event to its review request

    Returns:
        {"event": str, "messageId": str | None, "processed": bool, "error": str | None}
    """
    event_name = event.get("event")
    result: Dict[str, Any] = {
        "event": event_name,
        "messageId": event.get("sg_message_id"),
        "processed": False,
        "error": None,
    }

    if event_name not in SUPPORTED_EVENTS:
        result["error"] = f"Unsupported event type: {event_name}"
        return result

    request = find_request_for_event(db, event)
    if not request:
        logger.warning(
            "Review request not found for SendGrid event",
            extra={"extra_data": {"event": event_name, "sg_message_id": event.get("sg_message_id")}},
        )
        result["error"] = "Review request not found"
        return result

    occurred_at = _event_time(event)
    metadata: Dict[str, Any] = {
        "sendgridMessageId": event.get("sg_message_id"),
        "eventType": event_name,
        "timestamp": occurred_at.isoformat(),
    }
    reason = event.get("reason")

    if event_name == "processed":
        event_type = EventType.EMAIL_PROCESSED
        description = "Email accepted by SendGrid for delivery"

    elif event_name == "delivered":
        event_type = EventType.REQUEST_DELIVERED
        description = "Email delivered successfully"
        if request.status in (RequestStatus.QUEUED, RequestStatus.SENT) and request.mark_delivered(occurred_at):
            request.status = RequestStatus.DELIVERED

    elif event_name == "open":
        event_type = EventType.EMAIL_OPENED
        description = "Email opened by recipient"
        metadata.update({"ip": event.get("ip"), "userAgent": event.get("useragent")})

    elif event_name == "click":
        event_type = EventType.REQUEST_CLICKED
        description = "Email link clicked by recipient"
        metadata.update({"url": event.get("url"), "ip": event.get("ip"), "userAgent": event.get("useragent")})
        if request.status in (RequestStatus.SENT, RequestStatus.DELIVERED) and request.mark_clicked(occurred_at):
            request.status = RequestStatus.CLICKED

    elif event_name == "bounce":
        event_type = EventType.REQUEST_BOUNCED
        description = f"Email bounced: {reason or 'Unknown reason'}"
        metadata["bounceReason"] = reason
        request.status = RequestStatus.BOUNCED
        request.error_message = reason or "Email bounced"
        _suppress(db, request, event, SuppressionReason.BOUNCE, reason)

    elif event_name == "dropped":
        event_type = EventType.REQUEST_FAILED
        description = f"Email dropped: {reason or 'Unknown reason'}"
        metadata["dropReason"] = reason
        request.status = RequestStatus.FAILED
        request.error_message = description

    elif event_name == "spamreport":
        event_type = EventType.REQUEST_OPTED_OUT
        description = "Email marked as spam by recipient"
        request.status = RequestStatus.OPTED_OUT
        _suppress(db, request, event, SuppressionReason.SPAM, None)

    else:
        event_type = EventType.REQUEST_OPTED_OUT
        description = "Recipient unsubscribed from emails"
        request.status = RequestStatus.OPTED_OUT
        _suppress(db, request, event, SuppressionReason.UNSUBSCRIBE, None)

    log_event(
        db,
        business_id=request.business_id,
        review_request_id=request.id,
        event_type=event_type,
        source="webhook",
        description=description,
        metadata=metadata,
        commit=False,
    )
    db.commit()

    result["processed"] = True
    return result


def _suppress(
    db: Session,
    request: ReviewRequest,
    event: Dict[str, Any],
    reason: SuppressionReason,
    notes: Optional[str],
) -> None:
    contact = event.get("email") or request.customer.email
    if not contact:
        return
    add_suppression(
        db,
        business_id=request.business_id,
        contact=contact,
        channel=RequestChannel.EMAIL,
        reason=reason,
        source=SuppressionSource.WEBHOOK,
        notes=notes,
    )


def process_sendgrid_events(db: Session, events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Process a webhook batch; a failing event never stops the rest"""
    results = []
    for event in events:
        if not isinstance(event, dict):
            results.append({"event": None, "messageId": None, "processed": False, "error": "Invalid event"})
            continue
        try:
            results.append(process_sendgrid_event(db, event))
        except Exception as e:
            db.rollback()
            logger.exception(
                "Failed to process SendGrid event",
                extra={"extra_data": {"event": event.get("event"), "sg_message_id": event.get("sg_message_id")}},
            )
            results.append({
                "event": event.get("event"),
                "messageId": event.get("sg_message_id"),
                "processed": False,
                "error": type(e).__name__,
            })

    logger.info(
        "SendGrid webhook processed",
        extra={"extra_data": {
            "total": len(results),
            "processed": sum(1 for r in results if r["processed"]),
        }},
    )
    return results
