"""
Tests for the SendGrid event webhook
"""
from datetime import datetime, timedelta

from app.models import Event, EventType, RequestStatus, Suppression, SuppressionReason, SuppressionSource
from app.services.delivery_events import process_sendgrid_event
from tests.conftest import make_customer, make_review_request, make_sent_request

TIMESTAMP = 1718452800  # 2024-06-15 12:00:00 UTC


def sendgrid_event(request, event, **extra):
    payload = {
        "event": event,
        "email": "jane@example.com",
        "timestamp": TIMESTAMP,
        "sg_message_id": f"{request.external_id}.filter0001",
        "requestId": str(request.id),
    }
    payload.update(extra)
    return payload


def sent_request(db, business, **kwargs):
    kwargs.setdefault("sent_at", datetime(2024, 6, 15, 11, 0, 0))
    kwargs.setdefault("external_id", "msg-abc")
    return make_sent_request(db, business, make_customer(db, business), **kwargs)


def test_delivered(db_session, business):
    request = sent_request(db_session, business)

    result = process_sendgrid_event(db_session, sendgrid_event(request, "delivered"))

    assert result["processed"] is True
    db_session.refresh(request)
    assert request.status == RequestStatus.DELIVERED
    assert request.delivered_at == datetime(2024, 6, 15, 12, 0, 0)


def test_delivered_before_sent_is_ignored(db_session, business):
    """Test delivered_at is never set on a request that was never sent"""
    request = make_review_request(db_session, business, make_customer(db_session, business), external_id="msg-abc")

    result = process_sendgrid_event(db_session, sendgrid_event(request, "delivered"))

    assert result["processed"] is True
    db_session.refresh(request)
    assert request.delivered_at is None
    assert request.status == RequestStatus.QUEUED


def test_delivered_does_not_downgrade_clicked(db_session, business):
    clicked_at = datetime(2024, 6, 15, 11, 30, 0)
    request = sent_request(db_session, business, status=RequestStatus.CLICKED, clicked_at=clicked_at)

    process_sendgrid_event(db_session, sendgrid_event(request, "delivered"))

    db_session.refresh(request)
    assert request.status == RequestStatus.CLICKED
    assert request.delivered_at is None


def test_click_sets_clicked_once(db_session, business):
    request = sent_request(db_session, business, status=RequestStatus.DELIVERED)

    process_sendgrid_event(db_session, sendgrid_event(request, "click", url="https://t/r/x"))
    process_sendgrid_event(db_session, sendgrid_event(request, "click", timestamp=TIMESTAMP + 60))

    db_session.refresh(request)
    assert request.status == RequestStatus.CLICKED
    assert request.clicked_at == datetime(2024, 6, 15, 12, 0, 0)


def test_bounce_suppresses_contact(db_session, business):
    request = sent_request(db_session, business)

    process_sendgrid_event(db_session, sendgrid_event(request, "bounce", reason="550 mailbox unavailable"))

    db_session.refresh(request)
    assert request.status == RequestStatus.BOUNCED
    assert request.error_message == "550 mailbox unavailable"
    suppression = db_session.query(Suppression).one()
    assert suppression.reason == SuppressionReason.BOUNCE
    assert suppression.source == SuppressionSource.WEBHOOK
    assert suppression.contact == "jane@example.com"


def test_dropped_marks_failed(db_session, business):
    request = sent_request(db_session, business)

    process_sendgrid_event(db_session, sendgrid_event(request, "dropped", reason="Invalid SMTPAPI header"))

    db_session.refresh(request)
    assert request.status == RequestStatus.FAILED
    assert db_session.query(Suppression).count() == 0


def test_spam_and_unsubscribe_opt_out(db_session, business):
    spam = sent_request(db_session, business)
    unsubscribed = sent_request(db_session, business, external_id="msg-def")

    process_sendgrid_event(db_session, sendgrid_event(spam, "spamreport", email="spam@example.com"))
    process_sendgrid_event(db_session, sendgrid_event(unsubscribed, "unsubscribe", email="unsub@example.com"))

    db_session.refresh(spam)
    db_session.refresh(unsubscribed)
    assert spam.status == RequestStatus.OPTED_OUT
    assert unsubscribed.status == RequestStatus.OPTED_OUT
    reasons = {s.contact: s.reason for s in db_session.query(Suppression).all()}
    assert reasons == {
        "spam@example.com": SuppressionReason.SPAM,
        "unsub@example.com": SuppressionReason.UNSUBSCRIBE,
    }


def test_open_only_logs(db_session, business):
    request = sent_request(db_session, business)

    process_sendgrid_event(db_session, sendgrid_event(request, "open", useragent="Mail/1.0"))

    db_session.refresh(request)
    assert request.status == RequestStatus.SENT
    event = db_session.query(Event).filter(Event.type == EventType.EMAIL_OPENED).one()
    assert event.event_metadata["userAgent"] == "Mail/1.0"


def test_match_by_message_id(db_session, business):
    request = sent_request(db_session, business)
    payload = sendgrid_event(request, "delivered")
    del payload["requestId"]

    assert process_sendgrid_event(db_session, payload)["processed"] is True


def test_unknown_request_and_event(db_session, business):
    request = sent_request(db_session, business)

    missing = process_sendgrid_event(db_session, {"event": "delivered", "sg_message_id": "nope.filter"})
    unsupported = process_sendgrid_event(db_session, sendgrid_event(request, "deferred"))

    assert missing == {
        "event": "delivered",
        "messageId": "nope.filter",
        "processed": False,
        "error": "Review request not found",
    }
    assert unsupported["processed"] is False


def test_webhook_endpoint(client, db_session, business):
    """Test the webhook is public and reports per-event results"""
    request = sent_request(db_session, business)

    response = client.post(
        "/api/webhooks/sendgrid",
        json=[sendgrid_event(request, "delivered"), {"event": "delivered", "sg_message_id": "x.y"}, "junk"],
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["processed"] == 3
    assert [r["processed"] for r in data["results"]] == [True, False, False]


def test_webhook_rejects_non_array(client):
    response = client.post("/api/webhooks/sendgrid", json={"event": "delivered"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    response = client.post(
        "/api/webhooks/sendgrid",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_webhook_event_timestamp_fallback(db_session, business):
    request = sent_request(db_session, business)
    before = datetime.utcnow() - timedelta(seconds=1)

    process_sendgrid_event(db_session, sendgrid_event(request, "delivered", timestamp="garbage"))

    db_session.refresh(request)
    assert request.delivered_at >= before
