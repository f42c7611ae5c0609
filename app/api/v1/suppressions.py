"""
Suppression list API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Optional

from app.core.database import get_db
from app.core.errors import ValidationError, success_body
from app.models.review_request import RequestChannel
from app.models.suppression import SuppressionReason, SuppressionSource
from app.services.business_context import BusinessContext, get_business_context
from app.services.suppression_service import (
    create_manual_suppression,
    list_suppressions,
    serialize_suppression,
)
from app.services.validation import is_valid_email, is_valid_uk_phone, normalize_phone_number

router = APIRouter()

MAX_PAGE_SIZE = 100


class CreateSuppressionRequest(BaseModel):
    contact: str = Field(..., min_length=1, max_length=254)
    channel: Optional[RequestChannel] = None  # None suppresses every channel
    reason: SuppressionReason
    source: SuppressionSource = SuppressionSource.MANUAL
    notes: Optional[str] = Field(None, max_length=500)


def normalize_suppression_contact(contact: str, channel: Optional[RequestChannel]) -> str:
    contact = contact.strip()
    email_ok = is_valid_email(contact)
    phone_ok = is_valid_uk_phone(contact)

    if channel == RequestChannel.EMAIL and not email_ok:
        raise ValidationError("Invalid email address", [{"field": "contact", "message": "Invalid email address"}])
    if channel == RequestChannel.SMS and not phone_ok:
        raise ValidationError("Invalid phone number", [{"field": "contact", "message": "Invalid UK phone number"}])
    if channel is None and not (email_ok or phone_ok):
        raise ValidationError("Contact must be an email address or UK phone number")

    return contact if email_ok else normalize_phone_number(contact)


@router.get("")
async def list_suppressions_endpoint(
    channel: Optional[RequestChannel] = Query(None),
    reason: Optional[SuppressionReason] = Query(None),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db)
):
    """List active suppressions; page size is capped at 100"""
    limit = min(limit, MAX_PAGE_SIZE)
    items, total = list_suppressions(
        db, context.business_id, channel=channel, reason=reason, limit=limit, offset=offset
    )
    return success_body(
        [serialize_suppression(s) for s in items],
        meta={
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + len(items) < total,
        },
    )


@router.post("", status_code=201)
async def create_suppression_endpoint(
    body: CreateSuppressionRequest,
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db)
):
    contact = normalize_suppression_contact(body.contact, body.channel)
    suppression = create_manual_suppression(
        db,
        context.business_id,
        contact=contact,
        channel=body.channel,
        reason=body.reason,
        source=body.source,
        notes=body.notes,
    )
    return success_body({
        "suppression": serialize_suppression(suppression),
        "message": "Contact suppressed successfully",
    })
