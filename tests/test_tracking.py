"""
Tests for review link click tracking and unsubscribe
"""
from datetime import datetime, timedelta

from app.models import Event, EventType, RequestStatus, Suppression, SuppressionReason
from app.services.tracking_service import FALLBACK_REDIRECT_URL, resolve_redirect_url
from tests.conftest import make_business, make_customer, make_review_request, make_sent_request


def click_events(db, request):
    return db.query(Event).filter(
        Event.review_request_id == request.id,
        Event.type == EventType.REQUEST_CLICKED,
    ).order_by(Event.created_at).all()


def test_unknown_link(client):
    response = client.get("/r/does-not-exist")

    assert response.status_code == 404
    assert "Link Not Found" in response.text


def test_first_click_records_and_redirects(client, db_session, business):
    request = make_sent_request(db_session, business, make_customer(db_session, business))

    response = client.get(
        f"/r/{request.tracking_uuid}",
        headers={"User-Agent": "Mozilla/5.0", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )

    assert response.status_code == 200
    assert "Thank you, Jane!" in response.text
    assert f'content="1;url={business.google_review_url}"' in response.text
    assert "<script" not in response.text

    db_session.refresh(request)
    assert request.status == RequestStatus.CLICKED
    assert request.clicked_at is not None
    assert request.click_metadata["ipAddress"] == "203.0.113.7"
    assert request.click_metadata["userAgent"] == "Mozilla/5.0"

    events = click_events(db_session, request)
    assert len(events) == 1
    assert "repeatClick" not in events[0].event_metadata


def test_repeat_click_keeps_first_timestamp(client, db_session, business):
    """Test clicked_at is set once; later clicks are logged as repeats"""
    request = make_sent_request(db_session, business, make_customer(db_session, business))

    client.get(f"/r/{request.tracking_uuid}")
    db_session.refresh(request)
    first_click = request.clicked_at

    response = client.get(f"/r/{request.tracking_uuid}")

    assert response.status_code == 200
    db_session.refresh(request)
    assert request.clicked_at == first_click
    events = click_events(db_session, request)
    assert len(events) == 2
    assert events[1].event_metadata["repeatClick"] is True
    assert events[1].event_metadata["previousClickAt"] == first_click.isoformat()


def test_click_on_completed_request_keeps_status(client, db_session, business):
    request = make_sent_request(
        db_session, business, make_customer(db_session, business),
        status=RequestStatus.COMPLETED,
    )

    client.get(f"/r/{request.tracking_uuid}")

    db_session.refresh(request)
    assert request.status == RequestStatus.COMPLETED
    assert request.clicked_at is not None


def test_click_on_unsent_request(client, db_session, business):
    """Test an unsent request never gets clicked_at ahead of sent_at"""
    request = make_review_request(db_session, business, make_customer(db_session, business))

    response = client.get(f"/r/{request.tracking_uuid}")

    assert response.status_code == 200
    db_session.refresh(request)
    assert request.clicked_at is None
    assert request.status == RequestStatus.QUEUED
    assert click_events(db_session, request)[0].event_metadata["unsentClick"] is True


def test_opted_out_link_is_gone(client, db_session, business):
    request = make_sent_request(
        db_session, business, make_customer(db_session, business),
        status=RequestStatus.OPTED_OUT,
    )

    response = client.get(f"/r/{request.tracking_uuid}")

    assert response.status_code == 410
    assert "Link Inactive" in response.text
    assert click_events(db_session, request) == []


def test_inactive_link_is_gone(client, db_session, business):
    request = make_sent_request(db_session, business, make_customer(db_session, business), is_active=False)

    assert client.get(f"/r/{request.tracking_uuid}").status_code == 410


def test_redirect_page_escapes_names(client, db_session):
    business = make_business(db_session, name='<b>"Acme"</b>')
    customer = make_customer(db_session, business, first_name="<script>alert(1)</script>")
    request = make_sent_request(db_session, business, customer)

    response = client.get(f"/r/{request.tracking_uuid}")

    assert "<script>alert(1)</script>" not in response.text
    assert "&lt;script&gt;" in response.text
    assert "<b>" not in response.text


def test_redirect_url_preference(db_session):
    """Test the business review URL wins, then the request URL, then the website"""
    business = make_business(db_session, google_review_url=None, website="https://acme.example")
    customer = make_customer(db_session, business)

    request = make_review_request(db_session, business, customer, review_url="https://reviews.example/acme")
    assert resolve_redirect_url(request) == "https://reviews.example/acme"

    request = make_review_request(db_session, business, customer, review_url="javascript:alert(1)")
    assert resolve_redirect_url(request) == "https://acme.example"

    business.website = None
    db_session.commit()
    assert resolve_redirect_url(request) == FALLBACK_REDIRECT_URL


def test_unsubscribe(client, db_session, business):
    request = make_sent_request(db_session, business, make_customer(db_session, business, email="Jane@Example.com"))

    response = client.get(f"/r/unsubscribe/{request.tracking_uuid}")

    assert response.status_code == 200
    assert "You have been unsubscribed" in response.text
    db_session.refresh(request)
    assert request.status == RequestStatus.OPTED_OUT

    suppression = db_session.query(Suppression).one()
    assert suppression.contact == "jane@example.com"
    assert suppression.reason == SuppressionReason.UNSUBSCRIBE
    assert suppression.channel == request.channel

    # Unsubscribing twice leaves a single suppression
    client.get(f"/r/unsubscribe/{request.tracking_uuid}")
    assert db_session.query(Suppression).count() == 1


def test_unsubscribe_unknown_link(client):
    assert client.get("/r/unsubscribe/nope").status_code == 404


def test_tracking_links_need_no_session(client, db_session, business):
    request = make_sent_request(
        db_session, business, make_customer(db_session, business),
        sent_at=datetime.utcnow() - timedelta(days=1),
    )

    response = client.get(f"/r/{request.tracking_uuid}", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 200
