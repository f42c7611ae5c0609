"""
Tests for developer-only admin endpoints
"""
import pytest
from app.core.security import Identity
from tests.conftest import make_business, make_customer, make_review_request


@pytest.fixture
def developer_headers(resolver):
    resolver.add("dev", Identity(clerk_user_id="user_dev", roles=frozenset({"developer"})))
    return {"Authorization": "Bearer dev"}


def test_requires_developer(client, auth_headers):
    response = client.get("/api/admin/businesses", headers=auth_headers)

    assert response.status_code == 403
    assert response.json()["error"] == {"code": "FORBIDDEN", "message": "Developer access required"}


def test_lists_businesses_with_metrics(client, developer_headers, business, db_session):
    customer = make_customer(db_session, business)
    make_customer(db_session, business, email="gone@example.com").is_active = False
    db_session.commit()
    make_review_request(db_session, business, customer)
    business.sms_credits_used = 7
    db_session.commit()
    make_business(db_session, name="Closed Shop", is_active=False)

    response = client.get("/api/admin/businesses", headers=developer_headers)

    assert response.status_code == 200
    rows = {row["name"]: row for row in response.json()["data"]}
    acme = rows["Acme Cafe"]
    assert acme["status"] == "Active"
    assert acme["metrics"] == {
        "customers": 1,
        "reviewRequests": 1,
        "suppressions": 0,
        "smsUsage": "7/100",
        "emailUsage": "0/500",
    }
    assert rows["Closed Shop"]["status"] == "Inactive"
    assert rows["Closed Shop"]["metrics"]["customers"] == 0
