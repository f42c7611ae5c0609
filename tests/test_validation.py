"""
Tests for contact validation, link generation and templating
"""
import pytest
from app.models.review_request import RequestChannel
from app.services.validation import (
    can_send_to_customer,
    generate_tracking_url,
    generate_unsubscribe_url,
    get_contact_for_channel,
    is_valid_email,
    is_valid_uk_phone,
    normalize_phone_number,
    render_message_template,
)


def test_tracking_urls_are_plain_concatenation():
    """Tracking links are base + path + id, byte for byte"""
    assert generate_tracking_url("https://app.test", "abc-123") == "https://app.test/r/abc-123"
    assert generate_unsubscribe_url("https://app.test", "abc-123") == "https://app.test/r/unsubscribe/abc-123"

    # Trailing slash on the base is kept as-is
    assert generate_tracking_url("https://app.test/", "x") == "https://app.test//r/x"
    assert generate_unsubscribe_url("https://app.test/", "x") == "https://app.test//r/unsubscribe/x"


@pytest.mark.parametrize("email", [
    "user@example.com",
    "user+reviews@example.com",
    "first.last@mail.example.co.uk",
])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", [
    None,
    "",
    "user @example.com",
    "@example.com",
    "user@",
    "user@example",
    "userexample.com",
])
def test_invalid_emails(email):
    assert not is_valid_email(email)


@pytest.mark.parametrize("phone", [
    "+447123456789",
    "+44 7123 456789",
    "07123456789",
    "(020) 7946 0958",
    "447123456789",
])
def test_valid_uk_phones(phone):
    assert is_valid_uk_phone(phone)


@pytest.mark.parametrize("phone", [
    None,
    "",
    "+12025550123",
    "not a phone",
    "+440123456789",
    "00123456789",
    "0712345",
])
def test_invalid_uk_phones(phone):
    assert not is_valid_uk_phone(phone)


def test_normalize_phone_number():
    assert normalize_phone_number("0207946095") == "+44207946095"
    assert normalize_phone_number("44207946095") == "+44207946095"
    # Anything else is returned unchanged
    assert normalize_phone_number("+1 202 555 0123") == "+1 202 555 0123"


@pytest.mark.parametrize("phone", [
    "+447123456789",
    "+44 7123 456789",
    "07123456789",
    "447123456789",
    "(07123) 456-789",
])
def test_uk_mobile_formats_normalize_to_e164(phone):
    assert normalize_phone_number(phone) == "+447123456789"


def test_contact_for_channel():
    assert get_contact_for_channel("a@b.co", "+447123456789", RequestChannel.EMAIL) == "a@b.co"
    assert get_contact_for_channel("a@b.co", "+447123456789", RequestChannel.SMS) == "+447123456789"
    assert get_contact_for_channel(None, "+447123456789", RequestChannel.EMAIL) is None


def test_can_send_to_customer():
    assert can_send_to_customer("a@b.co", None, RequestChannel.EMAIL)
    assert not can_send_to_customer("a@b.co", None, RequestChannel.SMS)
    assert not can_send_to_customer("broken", None, RequestChannel.EMAIL)
    assert can_send_to_customer(None, "07123456789", RequestChannel.SMS)


def test_render_message_template():
    rendered = render_message_template(
        "Hi {{firstName}} {{ lastName }}, {{businessName}} says thanks: {{reviewUrl}} {{unknown}}",
        {"firstName": "Jane", "lastName": None, "businessName": "Acme", "reviewUrl": "https://t/r/1"},
    )
    assert rendered == "Hi Jane , Acme says thanks: https://t/r/1 {{unknown}}"
