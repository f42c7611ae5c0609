"""
Provider health endpoints
"""
from fastapi import APIRouter, Depends

from app.core.errors import error_response, success_body
from app.services.messaging import MessagingService, get_messaging_service

router = APIRouter()


@router.get("/sendgrid")
async def sendgrid_health(messaging: MessagingService = Depends(get_messaging_service)):
    """Verify the SendGrid API key; 503 when it is missing or rejected"""
    check = await messaging.sendgrid.check_api_key()
    if not check.get("valid"):
        return error_response(503, "SERVICE_UNAVAILABLE", "SendGrid is not available", check)
    return success_body(check)
