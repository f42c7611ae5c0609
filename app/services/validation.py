"""
Contact validation, link generation and message templating helpers
"""
import re
from typing import Dict, Optional

from app.models.review_request import RequestChannel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
UK_INTERNATIONAL_PATTERN = re.compile(r"^44[1-9]\d{9}$")
UK_NATIONAL_PATTERN = re.compile(r"^0[1-9]\d{8,9}$")

TEMPLATE_VARIABLE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def generate_tracking_url(base_url: str, request_uuid: str) -> str:
    return f"{base_url}/r/{request_uuid}"


def generate_unsubscribe_url(base_url: str, request_uuid: str) -> str:
    return f"{base_url}/r/unsubscribe/{request_uuid}"


def is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return EMAIL_PATTERN.match(email) is not None


def is_valid_uk_phone(phone: Optional[str]) -> bool:
    """
    Accepts UK numbers in international (+44 / 44) or national (0...) form.
    Spaces, dashes and brackets are ignored.
    """
    if not phone:
        return False

    digits = re.sub(r"\D", "", phone)
    if len(digits) == 12 and digits.startswith("44"):
        return UK_INTERNATIONAL_PATTERN.match(digits) is not None
    if len(digits) in (10, 11) and digits.startswith("0"):
        return UK_NATIONAL_PATTERN.match(digits) is not None
    return False


def normalize_phone_number(phone: str) -> str:
    """
    Convert UK numbers to E.164 (+44...). Punctuation and spaces are dropped,
    so "+44 7123 456789", "447123456789" and "07123456789" all give
    "+447123456789". Anything else is returned unchanged.
    """
    digits = re.sub(r"\D", "", phone)
    if len(digits) in (10, 11) and digits.startswith("0"):
        return "+44" + digits[1:]
    if len(digits) in (11, 12) and digits.startswith("44"):
        return "+" + digits
    return phone


def get_contact_for_channel(email: Optional[str], phone: Optional[str], channel: RequestChannel) -> Optional[str]:
    if channel == RequestChannel.EMAIL:
        return email
    if channel == RequestChannel.SMS:
        return phone
    return None


def can_send_to_customer(email: Optional[str], phone: Optional[str], channel: RequestChannel) -> bool:
    contact = get_contact_for_channel(email, phone, channel)
    if not contact:
        return False
    if channel == RequestChannel.EMAIL:
        return is_valid_email(contact)
    return is_valid_uk_phone(contact)


def render_message_template(template: str, variables: Dict[str, Optional[str]]) -> str:
    """
    Replace {{name}} placeholders. Unknown placeholders are left in place,
    known ones with a None value render as an empty string.
    """
    def replace(match):
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        return "" if value is None else str(value)

    return TEMPLATE_VARIABLE.sub(replace, template)
