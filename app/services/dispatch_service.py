"""
Review request dispatch (single and bulk)
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFound, ReviewRunnerError
from app.models.review_request import ReviewRequest
from app.services.messaging import MessagingService

logger = logging.getLogger(__name__)

UNEXPECTED_SEND_ERROR = "Unexpected error while sending"


def parse_request_id(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def get_owned_request(db: Session, business_id: uuid.UUID, review_request_id: Any) -> ReviewRequest:
    """
    Load a review request scoped to the caller's business.
    Malformed, unknown and foreign ids all raise NotFound.
    """
    request_uuid = parse_request_id(review_request_id)
    if request_uuid is None:
        raise NotFound("Review request")

    request = db.query(ReviewRequest).filter(
        ReviewRequest.id == request_uuid,
        ReviewRequest.business_id == business_id,
    ).first()
    if not request:
        raise NotFound("Review request")
    return request


async def dispatch_single(
    db: Session,
    business_id: uuid.UUID,
    review_request_id: Any,
    messaging: MessagingService,
) -> Dict[str, Any]:
    """
    Send one review request.

    Returns:
        {"messageId": str}
    """
    request = get_owned_request(db, business_id, review_request_id)
    message_id = await messaging.process_review_request(db, request.id)
    return {"messageId": message_id}


async def _send_one(
    db: Session,
    business_id: uuid.UUID,
    review_request_id: Any,
    messaging: MessagingService,
) -> Dict[str, Any]:
    request = get_owned_request(db, business_id, review_request_id)
    message_id = await messaging.process_review_request(db, request.id)
    return {"requestId": str(request.id), "success": True, "error": None, "messageId": message_id}


async def dispatch_bulk(
    db: Session,
    business_id: uuid.UUID,
    review_request_ids: List[Any],
    messaging: MessagingService,
) -> Dict[str, Any]:
    """
    Send many review requests concurrently; one failure never aborts the others.

    Returns:
        {
            "sent": int,
            "failed": int,
            "results": [{"requestId", "success", "error"?, "messageId"?}]  # input order
        }
    """
    outcomes = await asyncio.gather(
        *[_send_one(db, business_id, request_id, messaging) for request_id in review_request_ids],
        return_exceptions=True,
    )

    results = []
    for request_id, outcome in zip(review_request_ids, outcomes):
        if isinstance(outcome, ReviewRunnerError):
            results.append({"requestId": str(request_id), "success": False, "error": outcome.message})
        elif isinstance(outcome, Exception):
            logger.exception(
                "Unexpected error in bulk send",
                exc_info=outcome,
                extra={"extra_data": {"review_request_id": str(request_id)}},
            )
            results.append({"requestId": str(request_id), "success": False, "error": UNEXPECTED_SEND_ERROR})
        else:
            results.append(outcome)

    sent = sum(1 for result in results if result["success"])
    logger.info(
        "Bulk send finished",
        extra={"extra_data": {
            "business_id": str(business_id),
            "total": len(results),
            "sent": sent,
            "failed": len(results) - sent,
        }},
    )
    return {"sent": sent, "failed": len(results) - sent, "results": results}
