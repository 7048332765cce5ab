"""
Professional dashboard.

Goals:
- Only pro or admin accounts reach the dashboard.
- The function receives the caller's row id, auth id and business id.
- A professional without a business is sent back to onboarding (409).
- An explicit businessId must belong to the caller.
"""
import json

import pytest


@pytest.fixture
def dashboard(fake_backend):
    fake_backend.on_function("web-get-pro-dashboard", body={"data": {"customers": 12}})


def signed_in(fake_backend, **flags):
    row = fake_backend.add_user(f"user{len(fake_backend.rows)}@example.com", **flags)
    return row, {"Authorization": f"Bearer {fake_backend.issue_token(row['auth_id'])}"}


def sent_payload(fake_backend) -> dict:
    return json.loads(fake_backend.calls_to("/functions/v1/web-get-pro-dashboard")[0].content)


def test_dashboard_passes_identity_and_business(client, fake_backend, dashboard):
    row, headers = signed_in(fake_backend, pro=True)
    fake_backend.add_business(row["id"], "b1")

    resp = client.get("/api/pro/dashboard", headers=headers)

    assert resp.status_code == 200
    assert resp.json() == {"businessId": "b1", "data": {"customers": 12}}
    assert sent_payload(fake_backend) == {"userId": row["id"], "authId": row["auth_id"], "businessId": "b1"}


def test_dashboard_uses_requested_business(client, fake_backend, dashboard):
    row, headers = signed_in(fake_backend, pro=True)
    fake_backend.add_business(row["id"], "b1")
    fake_backend.add_business(row["id"], "b2")

    resp = client.get("/api/pro/dashboard", params={"businessId": "b2"}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["businessId"] == "b2"
    assert sent_payload(fake_backend)["businessId"] == "b2"


def test_foreign_business_is_403(client, fake_backend, dashboard):
    row, headers = signed_in(fake_backend, pro=True)
    other, _ = signed_in(fake_backend, pro=True)
    fake_backend.add_business(row["id"], "b1")
    fake_backend.add_business(other["id"], "b2")

    resp = client.get("/api/pro/dashboard", params={"businessId": "b2"}, headers=headers)

    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"
    assert fake_backend.calls_to("/functions/v1/") == []


def test_professional_without_business_is_409(client, fake_backend, dashboard):
    _, headers = signed_in(fake_backend, pro=True)

    resp = client.get("/api/pro/dashboard", headers=headers)

    assert resp.status_code == 409
    assert resp.json()["code"] == "onboarding_incomplete"
    assert fake_backend.calls_to("/functions/v1/") == []


def test_admin_may_open_dashboard(client, fake_backend, dashboard):
    row, headers = signed_in(fake_backend, admin=True)
    fake_backend.add_business(row["id"], "b1")

    assert client.get("/api/pro/dashboard", headers=headers).status_code == 200


def test_client_account_is_403(client, fake_backend, dashboard):
    row, headers = signed_in(fake_backend)
    fake_backend.add_business(row["id"], "b1")

    resp = client.get("/api/pro/dashboard", headers=headers)

    assert resp.status_code == 403
    assert resp.json()["error"] == "This area is reserved for professionals"
    assert fake_backend.calls_to("/functions/v1/") == []


def test_ownership_lookup_failure_is_500(client, fake_backend, dashboard):
    _, headers = signed_in(fake_backend, pro=True)
    fake_backend.query_error = "statement timeout"

    resp = client.get("/api/pro/dashboard", headers=headers)

    assert resp.status_code == 500
    assert resp.json()["code"] == "query_failed"


def test_dashboard_requires_session(client, fake_backend):
    resp = client.get("/api/pro/dashboard")

    assert resp.status_code == 401
    assert fake_backend.calls_to("/functions/v1/") == []
