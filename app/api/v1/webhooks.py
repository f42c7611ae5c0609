"""
Inbound provider webhooks
"""
import json

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import ValidationError, success_body
from app.services.delivery_events import process_sendgrid_events

router = APIRouter()


@router.post("/sendgrid")
async def sendgrid_events(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    SendGrid event webhook
    Payload is a JSON array of events; each is applied independently
    """
    try:
        events = await request.json()
    except json.JSONDecodeError:
        raise ValidationError("Invalid payload format")

    if not isinstance(events, list):
        raise ValidationError("Invalid payload format: expected an array of events")

    results = process_sendgrid_events(db, events)
    return success_body({"processed": len(events), "results": results})
