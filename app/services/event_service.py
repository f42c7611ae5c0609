"""
Event logging service
"""
from sqlalchemy.orm import Session
from typing import Optional, Dict, Any
from app.models.event import Event, EventType
import uuid


def log_event(
    db: Session,
    business_id: uuid.UUID,
    event_type: EventType,
    source: str,
    description: Optional[str] = None,
    review_request_id: Optional[uuid.UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    commit: bool = True,
) -> Event:
    """Append an event row"""
    event = Event(
        business_id=business_id,
        review_request_id=review_request_id,
        type=event_type,
        source=source,
        description=description,
        event_metadata=metadata or {},
    )
    db.add(event)
    if commit:
        db.commit()
    return event
