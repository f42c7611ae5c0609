"""
Review request API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import math
import uuid

from app.core.database import get_db
from app.core.errors import ValidationError, success_body
from app.models.review_request import RequestChannel, RequestStatus
from app.services.business_context import BusinessContext, get_business_context
from app.services.dispatch_service import dispatch_bulk, dispatch_single
from app.services.messaging import MessagingService, get_messaging_service
from app.services.review_request_service import (
    create_review_request,
    list_review_requests,
    serialize_review_request,
)

router = APIRouter()

MAX_BULK_SEND = 100


class CreateReviewRequestRequest(BaseModel):
    customer_id: uuid.UUID = Field(..., alias="customerId")
    channel: RequestChannel
    message_content: str = Field(..., alias="messageContent", min_length=1, max_length=1600)
    subject: Optional[str] = Field(None, max_length=200)
    review_url: Optional[str] = Field(None, alias="reviewUrl", max_length=2048)
    scheduled_for: Optional[datetime] = Field(None, alias="scheduledFor")


class SendReviewRequestsRequest(BaseModel):
    # Ids stay strings so malformed ids surface as "not found", not as a validation error
    review_request_id: Optional[str] = Field(None, alias="reviewRequestId")
    review_request_ids: Optional[List[str]] = Field(None, alias="reviewRequestIds", max_length=MAX_BULK_SEND)


@router.get("")
async def list_review_requests_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[RequestStatus] = Query(None),
    channel: Optional[RequestChannel] = Query(None),
    customer_id: Optional[uuid.UUID] = Query(None, alias="customerId"),
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db)
):
    """List review requests of the caller's business, newest first"""
    requests, total = list_review_requests(
        db,
        context.business_id,
        page=page,
        limit=limit,
        status=status,
        channel=channel,
        customer_id=customer_id,
    )
    return success_body(
        [serialize_review_request(r) for r in requests],
        meta={
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if total else 0,
        },
    )


@router.post("", status_code=201)
async def create_review_request_endpoint(
    body: CreateReviewRequestRequest,
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db)
):
    """Create a queued review request for one customer"""
    request = create_review_request(
        db,
        context.business_id,
        customer_id=body.customer_id,
        channel=body.channel,
        message_content=body.message_content,
        subject=body.subject,
        review_url=body.review_url,
        scheduled_for=body.scheduled_for,
    )
    return success_body(serialize_review_request(request))


@router.post("/send")
async def send_review_requests_endpoint(
    body: SendReviewRequestsRequest,
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db),
    messaging: MessagingService = Depends(get_messaging_service)
):
    """
    Send review requests now

    Body is either {"reviewRequestId": id} (single) or
    {"reviewRequestIds": [ids]} (bulk, per-item results).
    """
    if body.review_request_ids is not None:
        result = await dispatch_bulk(db, context.business_id, body.review_request_ids, messaging)
        return success_body(result)

    if body.review_request_id is None:
        raise ValidationError("reviewRequestId or reviewRequestIds is required")

    result = await dispatch_single(db, context.business_id, body.review_request_id, messaging)
    return success_body(result)
