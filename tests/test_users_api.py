"""
Tests for user profile endpoints
"""
import pytest
from app.core.security import Identity
from app.main import app
from app.models import User
from app.services.identity_client import get_clerk_client


class FakeClerk:
    def __init__(self, users=None):
        self.users = users or {}
        self.calls = []

    async def get_user(self, clerk_user_id):
        self.calls.append(clerk_user_id)
        return self.users.get(clerk_user_id)


@pytest.fixture
def clerk(client):
    fake = FakeClerk()
    app.dependency_overrides[get_clerk_client] = lambda: fake
    return fake


def test_get_profile(client, auth_headers, owner, business, clerk):
    response = client.get("/api/users/profile", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["clerkUserId"] == "user_owner"
    assert data["businessId"] == str(business.id)
    assert clerk.calls == []


def test_profile_is_created_from_session_claims(client, resolver, db_session, clerk):
    resolver.add("fresh", Identity(clerk_user_id="user_fresh", email="fresh@example.com", first_name="Fran"))

    response = client.get("/api/users/profile", headers={"Authorization": "Bearer fresh"})

    assert response.status_code == 200
    assert response.json()["data"]["email"] == "fresh@example.com"
    assert response.json()["data"]["businessId"] is None
    assert db_session.query(User).filter(User.clerk_user_id == "user_fresh").count() == 1
    assert clerk.calls == []


def test_profile_is_created_from_identity_provider(client, resolver, db_session, clerk):
    """Test a user with no email claim is looked up in Clerk"""
    clerk.users["user_lookup"] = {
        "id": "user_lookup",
        "email": "lookup@example.com",
        "firstName": "Lou",
        "lastName": None,
        "imageUrl": "https://img.example/lou.png",
    }
    resolver.add("lookup", Identity(clerk_user_id="user_lookup"))

    response = client.get("/api/users/profile", headers={"Authorization": "Bearer lookup"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "lookup@example.com"
    assert data["imageUrl"] == "https://img.example/lou.png"
    assert clerk.calls == ["user_lookup"]


def test_profile_unknown_to_identity_provider(client, resolver, clerk):
    resolver.add("ghost", Identity(clerk_user_id="user_ghost"))

    response = client.get("/api/users/profile", headers={"Authorization": "Bearer ghost"})

    assert response.status_code == 404


def test_profile_without_email(client, resolver, clerk):
    clerk.users["user_noemail"] = {"id": "user_noemail", "email": None}
    resolver.add("noemail", Identity(clerk_user_id="user_noemail"))

    response = client.get("/api/users/profile", headers={"Authorization": "Bearer noemail"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "No primary email found"


def test_update_profile(client, auth_headers, owner, clerk):
    response = client.patch(
        "/api/users/profile",
        json={
            "firstName": "Olivia",
            "uiPreferences": {"theme": "dark"},
            "imageUrl": "https://img.example/olivia.png",
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["firstName"] == "Olivia"
    assert data["lastName"] == "Owner"
    assert data["uiPreferences"] == {"theme": "dark"}
    assert data["imageUrl"] == "https://img.example/olivia.png"
    assert data["lastActiveAt"] is not None


def test_update_profile_validation(client, auth_headers, owner, clerk):
    for body in [{"firstName": ""}, {"imageUrl": "not a url"}, {"uiPreferences": "dark"}]:
        response = client.patch("/api/users/profile", json=body, headers=auth_headers)
        assert response.status_code == 400, body
