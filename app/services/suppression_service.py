"""
Suppression list service
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.errors import AlreadyExists
from app.models.event import EventType
from app.models.review_request import RequestChannel
from app.models.suppression import Suppression, SuppressionReason, SuppressionSource
from app.services.event_service import log_event
from app.services.validation import is_valid_uk_phone, normalize_phone_number

logger = logging.getLogger(__name__)


def normalize_contact(contact: str) -> str:
    """Emails are lower-cased, UK phone numbers stored in E.164 form"""
    contact = contact.strip()
    if "@" not in contact and is_valid_uk_phone(contact):
        return normalize_phone_number(contact)
    return contact.lower()


def find_active_suppression(
    db: Session,
    business_id: uuid.UUID,
    contact: str,
    channel: Optional[RequestChannel],
) -> Optional[Suppression]:
    """
    Return the active suppression blocking this contact on this channel.
    Suppressions without a channel block every channel.
    """
    query = db.query(Suppression).filter(
        Suppression.business_id == business_id,
        Suppression.contact == normalize_contact(contact),
        Suppression.is_active == True,
    )
    if channel is not None:
        query = query.filter(or_(Suppression.channel == channel, Suppression.channel.is_(None)))
    return query.order_by(Suppression.created_at.desc()).first()


def get_suppression(
    db: Session,
    business_id: uuid.UUID,
    contact: str,
    channel: Optional[RequestChannel],
) -> Optional[Suppression]:
    """Exact (contact, channel) match, active or not"""
    query = db.query(Suppression).filter(
        Suppression.business_id == business_id,
        Suppression.contact == normalize_contact(contact),
    )
    if channel is None:
        query = query.filter(Suppression.channel.is_(None))
    else:
        query = query.filter(Suppression.channel == channel)
    return query.first()


def add_suppression(
    db: Session,
    business_id: uuid.UUID,
    contact: str,
    channel: Optional[RequestChannel],
    reason: SuppressionReason,
    source: SuppressionSource,
    notes: Optional[str] = None,
) -> Tuple[Suppression, bool]:
    """
    Add or reactivate a suppression.

    Returns (suppression, created). An already active entry is returned
    unchanged with created=False.
    """
    existing = get_suppression(db, business_id, contact, channel)
    if existing and existing.is_active:
        return existing, False

    if existing:
        existing.is_active = True
        existing.reason = reason
        existing.source = source
        existing.notes = notes
        suppression = existing
    else:
        suppression = Suppression(
            business_id=business_id,
            contact=normalize_contact(contact),
            channel=channel,
            reason=reason,
            source=source,
            notes=notes,
            is_active=True,
        )
        db.add(suppression)
    db.flush()

    channel_label = channel.value if channel else "all channels"
    log_event(
        db,
        business_id=business_id,
        event_type=EventType.SUPPRESSION_ADDED,
        source=source.value,
        description=f"Contact suppressed for {channel_label}",
        metadata={
            "suppressionId": str(suppression.id),
            "channel": channel.value if channel else None,
            "reason": reason.value,
            "notes": notes,
        },
        commit=False,
    )
    db.commit()

    logger.info(
        "Suppression added",
        extra={"extra_data": {
            "business_id": str(business_id),
            "suppression_id": str(suppression.id),
            "channel": channel_label,
            "reason": reason.value,
        }},
    )
    return suppression, True


def create_manual_suppression(
    db: Session,
    business_id: uuid.UUID,
    contact: str,
    channel: Optional[RequestChannel],
    reason: SuppressionReason,
    source: SuppressionSource = SuppressionSource.MANUAL,
    notes: Optional[str] = None,
) -> Suppression:
    """Create a suppression requested through the API; duplicates are a conflict"""
    existing = get_suppression(db, business_id, contact, channel)
    if existing and existing.is_active:
        raise AlreadyExists("Contact is already suppressed for this channel")
    suppression, _ = add_suppression(db, business_id, contact, channel, reason, source, notes)
    return suppression


def list_suppressions(
    db: Session,
    business_id: uuid.UUID,
    channel: Optional[RequestChannel] = None,
    reason: Optional[SuppressionReason] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Suppression], int]:
    query = db.query(Suppression).filter(
        Suppression.business_id == business_id,
        Suppression.is_active == True,
    )
    if channel is not None:
        query = query.filter(Suppression.channel == channel)
    if reason is not None:
        query = query.filter(Suppression.reason == reason)

    total = query.count()
    items = query.order_by(Suppression.created_at.desc()).offset(offset).limit(limit).all()
    return items, total


def serialize_suppression(suppression: Suppression) -> Dict[str, Any]:
    return {
        "id": str(suppression.id),
        "businessId": str(suppression.business_id),
        "contact": suppression.contact,
        "channel": suppression.channel.value if suppression.channel else None,
        "reason": suppression.reason.value,
        "source": suppression.source.value,
        "notes": suppression.notes,
        "isActive": suppression.is_active,
        "createdAt": suppression.created_at.isoformat() if suppression.created_at else None,
    }
