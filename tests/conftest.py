"""
Shared fixtures: in-memory database, fake identity provider and fake messaging providers
"""
import asyncio
import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.security import Identity
from app.main import app
from app.models import (
    Business,
    Customer,
    RequestChannel,
    RequestStatus,
    ReviewRequest,
    User,
)
from app.services.messaging import DeliveryError, MessagingService, get_messaging_service

OWNER_TOKEN = "owner-token"
OTHER_TOKEN = "other-token"


class FakeIdentityResolver:
    """Maps opaque test tokens to identities"""

    def __init__(self):
        self.identities = {}

    def add(self, token, identity):
        self.identities[token] = identity

    def resolve(self, token):
        return self.identities.get(token)


class FakeSendGrid:
    def __init__(self):
        self.sent = []
        self.failing = {}
        self.api_key_valid = True

    async def send_email(self, to_email, subject, html_content, to_name=None, custom_args=None):
        # Yield so gathered sends interleave
        await asyncio.sleep(0)
        if to_email in self.failing:
            raise DeliveryError(self.failing[to_email])
        self.sent.append({
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "custom_args": custom_args,
        })
        return f"sg-{len(self.sent)}"

    async def check_api_key(self):
        if not self.api_key_valid:
            return {"configured": True, "valid": False, "error": "SendGrid rejected the API key"}
        return {"configured": True, "valid": True, "canSendMail": True, "fromEmailConfigured": True}


class FakeTwilio:
    def __init__(self):
        self.sent = []

    async def send_sms(self, to_number, body):
        await asyncio.sleep(0)
        self.sent.append({"to": to_number, "body": body})
        return f"SM{len(self.sent):032d}"


@pytest.fixture
def db_session():
    """Create test database session"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def sendgrid():
    return FakeSendGrid()


@pytest.fixture
def twilio():
    return FakeTwilio()


@pytest.fixture
def messaging(sendgrid, twilio):
    return MessagingService(sendgrid=sendgrid, twilio=twilio)


@pytest.fixture
def resolver():
    return FakeIdentityResolver()


@pytest.fixture
def client(db_session, messaging, resolver):
    """Test client wired to the in-memory database and fake providers"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_messaging_service] = lambda: messaging
    original_resolver = app.state.identity_resolver
    app.state.identity_resolver = resolver
    app.state.setup_status_cache.clear()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.state.identity_resolver = original_resolver
    app.state.setup_status_cache.clear()


def make_business(db, name="Acme Cafe", **kwargs):
    kwargs.setdefault("google_review_url", "https://search.google.com/local/writereview?placeid=acme")
    kwargs.setdefault("is_active", True)
    kwargs.setdefault("settings", {})
    business = Business(name=name, **kwargs)
    db.add(business)
    db.commit()
    return business


def make_user(db, business, clerk_user_id="user_owner", email="owner@acme.test"):
    user = User(
        clerk_user_id=clerk_user_id,
        email=email,
        first_name="Olive",
        last_name="Owner",
        business_id=business.id if business else None,
    )
    db.add(user)
    db.commit()
    return user


def make_customer(db, business, first_name="Jane", last_name="Doe", email="jane@example.com", phone="+447123456789"):
    customer = Customer(
        business_id=business.id,
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
    )
    db.add(customer)
    db.commit()
    return customer


def make_review_request(db, business, customer, channel=RequestChannel.EMAIL, status=RequestStatus.QUEUED, **kwargs):
    tracking_uuid = kwargs.pop("tracking_uuid", str(uuid.uuid4()))
    kwargs.setdefault("message_content", "Hi {{firstName}}, please review {{businessName}} at {{reviewUrl}}")
    kwargs.setdefault("review_url", "https://example.com/review")
    request = ReviewRequest(
        business_id=business.id,
        customer_id=customer.id,
        channel=channel,
        status=status,
        tracking_uuid=tracking_uuid,
        tracking_url=f"http://localhost:3000/r/{tracking_uuid}",
        **kwargs,
    )
    db.add(request)
    db.commit()
    return request


def make_sent_request(db, business, customer, **kwargs):
    kwargs.setdefault("status", RequestStatus.SENT)
    kwargs.setdefault("sent_at", datetime.utcnow())
    return make_review_request(db, business, customer, **kwargs)


@pytest.fixture
def business(db_session):
    return make_business(db_session)


@pytest.fixture
def owner(db_session, business, resolver):
    """Signed-in user who owns `business`"""
    user = make_user(db_session, business)
    resolver.add(OWNER_TOKEN, Identity(clerk_user_id=user.clerk_user_id, email=user.email))
    return user


@pytest.fixture
def auth_headers(owner):
    return {"Authorization": f"Bearer {OWNER_TOKEN}"}


@pytest.fixture
def other_business(db_session, resolver):
    """A second tenant with its own signed-in user"""
    other = make_business(db_session, name="Other Bakery")
    user = make_user(db_session, other, clerk_user_id="user_other", email="other@bakery.test")
    resolver.add(OTHER_TOKEN, Identity(clerk_user_id=user.clerk_user_id, email=user.email))
    return other
