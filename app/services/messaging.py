"""
Outbound messaging: SendGrid email, Twilio SMS and the per-request send procedure
"""
import html
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConfigurationError, NotFound, SendFailed
from app.models.business import Business
from app.models.event import EventType
from app.models.review_request import ReviewRequest, RequestChannel, RequestStatus
from app.services.event_service import log_event
from app.services.suppression_service import find_active_suppression
from app.services.validation import (
    generate_unsubscribe_url,
    get_contact_for_channel,
    normalize_phone_number,
    render_message_template,
)

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_SUBJECT = "Share your experience with {business_name}"


class DeliveryError(Exception):
    """A provider rejected or failed to accept a message"""


def mask_contact(contact: str) -> str:
    return contact[:5] + "***"


class SendGridClient:
    """Client for the SendGrid v3 mail API"""

    def __init__(self):
        self.base_url = settings.SENDGRID_API_URL.rstrip("/")
        self.api_key = settings.SENDGRID_API_KEY
        self.from_email = settings.SENDGRID_FROM_EMAIL
        self.client = httpx.AsyncClient(timeout=15.0)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        to_name: Optional[str] = None,
        custom_args: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Send one email.

        Returns:
            the SendGrid message id (X-Message-Id header)
        """
        if not self.api_key or not self.from_email:
            raise ConfigurationError("SendGrid is not configured")

        recipient: Dict[str, str] = {"email": to_email}
        if to_name:
            recipient["name"] = to_name

        payload = {
            "personalizations": [{
                "to": [recipient],
                "custom_args": custom_args or {},
            }],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
            "tracking_settings": {
                # Links already point at our own /r/ redirect
                "click_tracking": {"enable": False, "enable_text": False},
                "open_tracking": {"enable": True},
            },
        }

        try:
            response = await self.client.post(
                f"{self.base_url}/mail/send",
                json=payload,
                headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DeliveryError(sendgrid_error_message(e.response.status_code, e.response.text))
        except httpx.RequestError as e:
            raise DeliveryError(f"Email sending failed: {e}")

        return response.headers.get("X-Message-Id", "unknown")

    async def check_api_key(self) -> Dict[str, Any]:
        """Verify the API key against the scopes endpoint"""
        if not self.api_key:
            return {"configured": False, "valid": False, "error": "SENDGRID_API_KEY is not set"}

        try:
            response = await self.client.get(f"{self.base_url}/scopes", headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return {
                "configured": True,
                "valid": False,
                "error": sendgrid_error_message(e.response.status_code, e.response.text),
            }
        except httpx.RequestError as e:
            return {"configured": True, "valid": False, "error": str(e)}

        scopes = response.json().get("scopes", [])
        return {
            "configured": True,
            "valid": True,
            "canSendMail": "mail.send" in scopes,
            "fromEmailConfigured": bool(self.from_email),
        }


def sendgrid_error_message(status_code: int, body: str) -> str:
    if status_code == 401:
        return "SendGrid rejected the API key"
    if status_code == 403:
        return "SendGrid API key lacks permission to send mail"
    if status_code == 413:
        return "Email payload too large"
    if status_code == 429:
        return "SendGrid rate limit exceeded"
    if status_code >= 500:
        return "SendGrid service unavailable"
    return f"SendGrid error {status_code}: {body[:200]}"


class TwilioClient:
    """Client for the Twilio Messages API"""

    def __init__(self):
        self.base_url = settings.TWILIO_API_URL.rstrip("/")
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.from_number = settings.TWILIO_PHONE_NUMBER
        self.client = httpx.AsyncClient(timeout=15.0)

    async def send_sms(self, to_number: str, body: str) -> str:
        """
        Send one SMS.

        Returns:
            the Twilio message SID
        """
        if not self.account_sid or not self.auth_token or not self.from_number:
            raise ConfigurationError("Twilio is not configured")

        try:
            response = await self.client.post(
                f"{self.base_url}/Accounts/{self.account_sid}/Messages.json",
                data={"To": to_number, "From": self.from_number, "Body": body},
                auth=(self.account_sid, self.auth_token),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                detail = e.response.json().get("message") or e.response.text
            except ValueError:
                detail = e.response.text
            raise DeliveryError(f"SMS sending failed: {detail}")
        except httpx.RequestError as e:
            raise DeliveryError(f"SMS sending failed: {e}")

        return response.json()["sid"]


def render_email_html(content: str, business_name: str, unsubscribe_url: str) -> str:
    paragraphs = "".join(
        f"<p>{html.escape(line)}</p>" for line in content.splitlines() if line.strip()
    )
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; color: #333;\">"
        f"{paragraphs}"
        "<hr style=\"border: none; border-top: 1px solid #eee;\">"
        f"<p style=\"font-size: 12px; color: #999;\">Sent on behalf of {html.escape(business_name)}. "
        f"<a href=\"{html.escape(unsubscribe_url)}\">Unsubscribe</a></p>"
        "</body></html>"
    )


def reserve_credit(business: Business, channel: RequestChannel) -> None:
    """
    Take one credit for the channel, or raise SendFailed when none are left.
    Sends gathered on one session see each other's reservations.
    """
    if channel == RequestChannel.EMAIL:
        used, limit = business.email_credits_used or 0, business.email_credits_limit
        if used >= limit:
            raise SendFailed(f"{channel.value} credit limit reached")
        business.email_credits_used = used + 1
    else:
        used, limit = business.sms_credits_used or 0, business.sms_credits_limit
        if used >= limit:
            raise SendFailed(f"{channel.value} credit limit reached")
        business.sms_credits_used = used + 1


def release_credit(business: Business, channel: RequestChannel) -> None:
    if channel == RequestChannel.EMAIL:
        business.email_credits_used = max((business.email_credits_used or 0) - 1, 0)
    else:
        business.sms_credits_used = max((business.sms_credits_used or 0) - 1, 0)


class MessagingService:
    """Runs the send procedure for a single review request"""

    def __init__(self, sendgrid: Optional[SendGridClient] = None, twilio: Optional[TwilioClient] = None):
        self.sendgrid = sendgrid or SendGridClient()
        self.twilio = twilio or TwilioClient()

    async def deliver(self, request: ReviewRequest, contact: str, content: str) -> str:
        """Hand the rendered message to the channel's provider; returns the provider message id"""
        business = request.business
        customer = request.customer

        if request.channel == RequestChannel.EMAIL:
            subject_template = request.subject or DEFAULT_EMAIL_SUBJECT.format(business_name=business.name)
            subject = render_message_template(subject_template, self.template_variables(request))
            unsubscribe_url = generate_unsubscribe_url(settings.APP_URL, request.tracking_uuid)
            return await self.sendgrid.send_email(
                to_email=contact,
                to_name=" ".join(filter(None, [customer.first_name, customer.last_name])) or None,
                subject=subject,
                html_content=render_email_html(content, business.name, unsubscribe_url),
                custom_args={
                    "requestId": str(request.id),
                    "businessId": str(request.business_id),
                },
            )

        return await self.twilio.send_sms(normalize_phone_number(contact), content)

    def template_variables(self, request: ReviewRequest) -> Dict[str, Optional[str]]:
        return {
            "firstName": request.customer.first_name,
            "lastName": request.customer.last_name or "",
            "businessName": request.business.name,
            "reviewUrl": request.tracking_url,
            "trackingUrl": request.tracking_url,
        }

    async def process_review_request(self, db: Session, review_request_id) -> str:
        """
        Send one review request.

        Returns:
            the provider message id

        Raises:
            NotFound: the request does not exist
            SendFailed: the request could not be sent (reason in the message)
            ConfigurationError: provider credentials are missing
        """
        request = db.query(ReviewRequest).filter(ReviewRequest.id == review_request_id).first()
        if not request:
            raise NotFound("Review request")

        customer = request.customer
        business = request.business
        channel = request.channel
        log_context = {
            "review_request_id": str(request.id),
            "business_id": str(request.business_id),
            "channel": channel.value,
        }

        contact = get_contact_for_channel(customer.email, customer.phone, channel)
        if not contact:
            raise SendFailed(f"No {channel.value.lower()} contact info for customer")

        suppression = find_active_suppression(db, request.business_id, contact, channel)
        if suppression:
            request.status = RequestStatus.OPTED_OUT
            request.error_message = f"Contact suppressed: {suppression.reason.value}"
            log_event(
                db,
                business_id=request.business_id,
                review_request_id=request.id,
                event_type=EventType.REQUEST_OPTED_OUT,
                source="system",
                description="Send blocked by suppression list",
                metadata={"suppressionId": str(suppression.id), "reason": suppression.reason.value},
                commit=False,
            )
            db.commit()
            logger.info("Skipped suppressed contact", extra={"extra_data": log_context})
            raise SendFailed("Contact is suppressed")

        content = render_message_template(request.message_content, self.template_variables(request))

        # No await between the limit check and the reservation
        reserve_credit(business, channel)
        try:
            message_id = await self.deliver(request, contact, content)
        except DeliveryError as e:
            release_credit(business, channel)
            request.status = RequestStatus.FAILED
            request.error_message = str(e)
            request.retry_count = (request.retry_count or 0) + 1
            log_event(
                db,
                business_id=request.business_id,
                review_request_id=request.id,
                event_type=EventType.REQUEST_FAILED,
                source="sendgrid" if channel == RequestChannel.EMAIL else "twilio",
                description=str(e),
                metadata={"retryCount": request.retry_count},
                commit=False,
            )
            db.commit()
            logger.error(
                "Failed to send review request: %s", e,
                extra={"extra_data": {**log_context, "contact": mask_contact(contact)}},
            )
            raise SendFailed(str(e))
        except Exception:
            release_credit(business, channel)
            raise

        request.status = RequestStatus.SENT
        request.mark_sent(datetime.utcnow())
        request.external_id = message_id
        request.error_message = None

        log_event(
            db,
            business_id=request.business_id,
            review_request_id=request.id,
            event_type=EventType.REQUEST_SENT,
            source="sendgrid" if channel == RequestChannel.EMAIL else "twilio",
            description=f"{'Email' if channel == RequestChannel.EMAIL else 'SMS'} sent to {mask_contact(contact)}",
            metadata={"messageId": message_id},
            commit=False,
        )
        db.commit()

        logger.info(
            "Review request sent",
            extra={"extra_data": {**log_context, "message_id": message_id}},
        )
        return message_id


# Singleton instance
_messaging_service: Optional[MessagingService] = None


def get_messaging_service() -> MessagingService:
    """Get messaging service instance"""
    global _messaging_service
    if _messaging_service is None:
        _messaging_service = MessagingService()
    return _messaging_service
