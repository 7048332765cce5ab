"""
Admin routes: role mutators (promote / demote), user listing and overview counts.

Goals:
- promote/demote flip the pro flag of the target row and are idempotent.
- Missing userId is a 400 with the documented message.
- Backend write failures surface as 500 with the cause.
- Listing narrows by role and by a case-insensitive name/email search.
- Overview counts come from exact backend counts.
- Only authenticated admins may call the routes.
"""
from datetime import datetime, timezone

import pytest

from olla.core.errors import MissingParameterError, MutationFailedError, QueryFailedError, ValidationError
from olla.features.admin.stats import month_start, overview_stats
from olla.features.users.service import demote, list_users, promote


@pytest.fixture
def admin_headers(fake_backend):
    admin = fake_backend.add_user("admin@example.com", admin=True)
    token = fake_backend.issue_token(admin["auth_id"])
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_promote_sets_pro_and_is_idempotent(fake_backend, backend_client):
    target = fake_backend.add_user("client@example.com", pro=False)

    assert await promote(backend_client, target["id"]) == "User promoted to professional"
    assert fake_backend.row(target["id"])["pro"] is True

    assert await promote(backend_client, target["id"]) == "User promoted to professional"
    assert fake_backend.row(target["id"])["pro"] is True


@pytest.mark.asyncio
async def test_demote_clears_pro(fake_backend, backend_client):
    target = fake_backend.add_user("pro@example.com", pro=True)

    assert await demote(backend_client, target["id"]) == "User demoted to client"
    assert fake_backend.row(target["id"])["pro"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id", [None, ""])
async def test_missing_user_id(fake_backend, backend_client, user_id):
    with pytest.raises(MissingParameterError, match="userId is required"):
        await promote(backend_client, user_id)
    assert fake_backend.calls_to("/rest/v1/users") == []


@pytest.mark.asyncio
async def test_write_failure_carries_cause(fake_backend, backend_client):
    fake_backend.mutation_error = "permission denied for table users"

    with pytest.raises(MutationFailedError, match="permission denied for table users"):
        await demote(backend_client, "u42")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def test_demote_route_scenario(client, fake_backend, admin_headers):
    target = fake_backend.add_user("u1@example.com", pro=True)

    resp = client.post("/api/admin/users/demote", json={"userId": target["id"]}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "User demoted to client"}
    assert fake_backend.row(target["id"])["pro"] is False


def test_promote_route(client, fake_backend, admin_headers):
    target = fake_backend.add_user("client@example.com")

    resp = client.post("/api/admin/users/promote", json={"userId": target["id"]}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "User promoted to professional"}
    assert fake_backend.row(target["id"])["pro"] is True


def test_promote_empty_body_is_400(client, admin_headers):
    resp = client.post("/api/admin/users/promote", json={}, headers=admin_headers)

    assert resp.status_code == 400
    assert resp.json()["error"] == "userId is required"


def test_promote_without_body_is_400(client, admin_headers):
    resp = client.post("/api/admin/users/promote", headers=admin_headers)

    assert resp.status_code == 400
    assert resp.json()["error"] == "userId is required"


def test_mutation_failure_is_500(client, fake_backend, admin_headers):
    fake_backend.mutation_error = "row lock timeout"

    resp = client.post("/api/admin/users/demote", json={"userId": "u1"}, headers=admin_headers)

    assert resp.status_code == 500
    assert resp.json()["error"] == "row lock timeout"


def test_anonymous_caller_is_401(client, fake_backend):
    target = fake_backend.add_user("client@example.com")

    resp = client.post("/api/admin/users/promote", json={"userId": target["id"]})

    assert resp.status_code == 401
    assert fake_backend.row(target["id"])["pro"] is False


def test_expired_token_is_401(client):
    resp = client.post(
        "/api/admin/users/promote",
        json={"userId": "u1"},
        headers={"Authorization": "Bearer revoked-token"},
    )
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthenticated"


def test_professional_caller_is_403(client, fake_backend):
    pro = fake_backend.add_user("pro@example.com", pro=True)
    target = fake_backend.add_user("client@example.com")
    token = fake_backend.issue_token(pro["auth_id"])

    resp = client.post(
        "/api/admin/users/promote",
        json={"userId": target["id"]},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert resp.status_code == 403
    assert fake_backend.row(target["id"])["pro"] is False


def test_admin_session_cookie_is_accepted(client, fake_backend):
    fake_backend.add_user("admin@example.com", "secret123", admin=True)
    target = fake_backend.add_user("client@example.com")
    signed_in = client.post("/api/auth/sign-in", json={"email": "admin@example.com", "password": "secret123"})
    assert signed_in.status_code == 200

    resp = client.post("/api/admin/users/promote", json={"userId": target["id"]})

    assert resp.status_code == 200
    assert fake_backend.row(target["id"])["pro"] is True


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@pytest.fixture
def population(fake_backend):
    fake_backend.add_user("alice@example.com", pro=True, created_at="2026-03-01T10:00:00+00:00")
    fake_backend.add_user("bob@shop.fr", created_at="2026-03-02T10:00:00+00:00")
    fake_backend.add_user("root@example.com", pro=True, admin=True, created_at="2026-03-03T10:00:00+00:00")
    fake_backend.rows[1]["user_firstname"] = "Bobby"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "role,emails",
    [
        ("all", ["root@example.com", "bob@shop.fr", "alice@example.com"]),
        ("pro", ["alice@example.com"]),
        ("client", ["bob@shop.fr"]),
        ("admin", ["root@example.com"]),
    ],
)
async def test_list_users_by_role(backend_client, population, role, emails):
    users = await list_users(backend_client, role=role)

    assert [u.email for u in users] == emails


@pytest.mark.asyncio
async def test_list_users_search_matches_name_or_email(backend_client, population):
    assert [u.email for u in await list_users(backend_client, search="  BOBBY ")] == ["bob@shop.fr"]
    assert [u.email for u in await list_users(backend_client, search="example")] == [
        "root@example.com",
        "alice@example.com",
    ]
    assert await list_users(backend_client, role="client", search="example") == []


@pytest.mark.asyncio
async def test_list_users_rejects_unknown_role(fake_backend, backend_client):
    with pytest.raises(ValidationError):
        await list_users(backend_client, role="superuser")
    assert fake_backend.calls_to("/rest/v1/users") == []


@pytest.mark.asyncio
async def test_list_users_query_failure(fake_backend, backend_client):
    fake_backend.query_error = "statement timeout"

    with pytest.raises(QueryFailedError, match="statement timeout"):
        await list_users(backend_client)


def test_list_route_includes_display_name(client, fake_backend, population, admin_headers):
    resp = client.get("/api/admin/users", params={"role": "client"}, headers=admin_headers)

    assert resp.status_code == 200
    users = resp.json()["users"]
    assert [u["email"] for u in users] == ["bob@shop.fr"]
    assert users[0]["display_name"] == "Bobby User2"


def test_list_route_unknown_role_is_400(client, admin_headers):
    resp = client.get("/api/admin/users", params={"role": "superuser"}, headers=admin_headers)

    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


def test_list_route_refuses_professionals(client, fake_backend):
    pro = fake_backend.add_user("pro@example.com", pro=True)
    token = fake_backend.issue_token(pro["auth_id"])

    resp = client.get("/api/admin/users", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Overview counts
# ---------------------------------------------------------------------------

def test_month_start_is_utc_midnight_of_first_day():
    now = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)

    assert month_start(now) == datetime(2026, 10, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_overview_counts(fake_backend, backend_client):
    old = fake_backend.add_user("old@example.com", pro=True, created_at="2026-09-30T23:59:59+00:00")
    fake_backend.add_user("new@example.com", created_at="2026-10-02T08:00:00+00:00")
    fake_backend.add_user("boss@example.com", admin=True, created_at="2026-10-05T08:00:00+00:00")
    fake_backend.add_business(old["id"], "b1")
    fake_backend.add_business(old["id"], "b2", active=False)
    fake_backend.tables["user_subscriptions"].extend([
        {"id": "s1", "status": "active"},
        {"id": "s2", "status": "canceled"},
    ])
    fake_backend.tables["business_tags"].extend([
        {"id": "t1", "tag_type": "NFC"},
        {"id": "t2", "tag_type": "NFC"},
        {"id": "t3", "tag_type": "QRC"},
    ])

    stats = await overview_stats(backend_client, now=datetime(2026, 10, 19, tzinfo=timezone.utc))

    assert {k: v for k, v in stats.items() if k != "recentUsers"} == {
        "totalUsers": 3,
        "proUsers": 1,
        "adminUsers": 1,
        "newUsersThisMonth": 2,
        "totalBusinesses": 2,
        "activeBusinesses": 1,
        "totalSubscriptions": 2,
        "activeSubscriptions": 1,
        "totalTags": 3,
        "nfcTags": 2,
        "qrTags": 1,
    }
    assert [u["email"] for u in stats["recentUsers"]] == [
        "boss@example.com",
        "new@example.com",
        "old@example.com",
    ]
    heads = [r for r in fake_backend.calls_to("/rest/v1/") if r.method == "HEAD"]
    assert all(r.headers["Prefer"] == "count=exact" for r in heads)


@pytest.mark.asyncio
async def test_recent_users_are_capped(fake_backend, backend_client):
    for day in range(1, 8):
        fake_backend.add_user(f"user{day}@example.com", created_at=f"2026-10-0{day}T08:00:00+00:00")

    stats = await overview_stats(backend_client)

    assert [u["email"] for u in stats["recentUsers"]] == [f"user{d}@example.com" for d in (7, 6, 5, 4, 3)]


@pytest.mark.asyncio
async def test_overview_query_failure(fake_backend, backend_client):
    fake_backend.query_error = "relation missing"

    with pytest.raises(QueryFailedError, match="relation missing"):
        await overview_stats(backend_client)


def test_stats_route(client, fake_backend, admin_headers):
    fake_backend.add_user("client@example.com")

    resp = client.get("/api/admin/stats", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["totalUsers"] == 2
    assert resp.json()["adminUsers"] == 1


def test_stats_route_refuses_professionals(client, fake_backend):
    pro = fake_backend.add_user("pro@example.com", pro=True)
    token = fake_backend.issue_token(pro["auth_id"])

    resp = client.get("/api/admin/stats", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 403
    assert fake_backend.calls_to("/rest/v1/businesses") == []
