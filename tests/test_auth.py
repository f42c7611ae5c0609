"""
Tests for the authentication boundary
"""
from datetime import datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from app.core.security import ClerkIdentityResolver, is_public_path
from tests.conftest import OWNER_TOKEN

PROTECTED_ROUTES = [
    ("get", "/api/customers"),
    ("post", "/api/customers"),
    ("get", "/api/review-requests"),
    ("post", "/api/review-requests"),
    ("post", "/api/review-requests/send"),
    ("get", "/api/analytics/click-through-rates"),
    ("post", "/api/auth/setup-check"),
    ("get", "/api/businesses/current"),
    ("post", "/api/businesses/search-places"),
    ("get", "/api/businesses/place-details"),
    ("get", "/api/suppressions"),
    ("post", "/api/suppressions"),
    ("get", "/api/users/profile"),
    ("patch", "/api/users/profile"),
    ("get", "/api/admin/businesses"),
]


@pytest.fixture(scope="module")
def rsa_keys():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


def make_token(private_pem, **claims):
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "user_123",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=5)).timestamp()),
        "azp": "http://localhost:3000",
    }
    payload.update(claims)
    return jwt.encode(payload, private_pem, algorithm="RS256")


@pytest.mark.parametrize("method,path", PROTECTED_ROUTES)
def test_protected_routes_require_session(client, method, path):
    """Test every protected route rejects anonymous callers before doing any work"""
    response = getattr(client, method)(path)

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": {"code": "UNAUTHORIZED", "message": "Authentication required"},
    }


@pytest.mark.parametrize("method,path", PROTECTED_ROUTES)
def test_protected_routes_reject_unknown_token(client, method, path):
    response = getattr(client, method)(path, headers={"Authorization": "Bearer forged"})

    assert response.status_code == 401


def test_session_cookie_is_accepted(client, owner):
    client.cookies.set("__session", OWNER_TOKEN)
    response = client.get("/api/customers")
    client.cookies.clear()

    assert response.status_code == 200


@pytest.mark.parametrize("path", [
    "/",
    "/health",
    "/api/health/sendgrid",
    "/r/abc",
    "/r/unsubscribe/abc",
    "/api/webhooks/sendgrid",
    "/auth/sign-in",
    "/auth/sign-up/verify",
    "/docs",
    "/openapi.json",
])
def test_public_paths(path):
    assert is_public_path(path)


@pytest.mark.parametrize("path", ["/api/customers", "/api/healthz", "/rr/abc", "/api/webhooksx"])
def test_non_public_paths(path):
    assert not is_public_path(path)


def test_public_routes_skip_auth(client):
    assert client.get("/").status_code == 200
    assert client.get("/r/unknown").status_code == 404


def test_resolver_accepts_valid_token(rsa_keys):
    private_pem, public_pem = rsa_keys
    resolver = ClerkIdentityResolver(public_pem, authorized_parties=["http://localhost:3000"])

    identity = resolver.resolve(make_token(private_pem, email="a@b.co", first_name="Ada"))

    assert identity.clerk_user_id == "user_123"
    assert identity.email == "a@b.co"
    assert identity.first_name == "Ada"
    assert not identity.is_developer


def test_resolver_rejects_bad_tokens(rsa_keys):
    private_pem, public_pem = rsa_keys
    other_private = rsa.generate_private_key(public_exponent=65537, key_size=2048).private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    resolver = ClerkIdentityResolver(public_pem, authorized_parties=["http://localhost:3000"])
    past = int((datetime.now(timezone.utc) - timedelta(hours=1)).timestamp())

    assert resolver.resolve("not-a-jwt") is None
    assert resolver.resolve(make_token(other_private)) is None
    assert resolver.resolve(make_token(private_pem, exp=past)) is None
    assert resolver.resolve(make_token(private_pem, azp="https://evil.example")) is None
    assert resolver.resolve(make_token(private_pem, sub="")) is None


def test_resolver_without_key_rejects_everything(rsa_keys):
    private_pem, _ = rsa_keys

    assert ClerkIdentityResolver("").resolve(make_token(private_pem)) is None


def test_developer_roles(rsa_keys):
    private_pem, public_pem = rsa_keys
    resolver = ClerkIdentityResolver(public_pem, developer_user_ids=["user_dev"])

    by_metadata = resolver.resolve(make_token(private_pem, metadata={"role": "developer"}))
    by_allowlist = resolver.resolve(make_token(private_pem, sub="user_dev"))
    plain = resolver.resolve(make_token(private_pem, public_metadata={"role": "member"}))

    assert by_metadata.is_developer
    assert by_allowlist.is_developer
    assert not plain.is_developer
    assert plain.roles == frozenset({"member"})
