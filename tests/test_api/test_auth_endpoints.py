from __future__ import annotations

import pytest

from experiment_tracker.config.settings import settings
from experiment_tracker.db.repository import UserRepository


@pytest.fixture()
def auth_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "AUTH_ENABLED", True)


async def _sign_in(client, login: str = "octocat"):
    return await client.post("/api/v1/auth/callback", json={"provider": "github", "login": login, "name": "Mona"})


@pytest.mark.asyncio
async def test_api_requires_token_when_auth_enabled(client, auth_enabled):
    response = await client.get("/api/v1/experiments")
    assert response.status_code == 401
    detail = response.json()["detail"]
    assert detail["code"] == "UNAUTHENTICATED"
    assert detail["details"]["sign_in_url"] == "/api/v1/auth/callback"

    garbled = await client.get("/api/v1/experiments", headers={"Authorization": "Bearer nonsense"})
    assert garbled.status_code == 401


@pytest.mark.asyncio
async def test_health_stays_public(client, auth_enabled):
    response = await client.get("/api/v1/system/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_callback_denies_identity_absent_from_allow_list(client, auth_enabled):
    response = await _sign_in(client, "stranger")
    assert response.status_code == 403
    body = response.json()
    assert body["detail"]["code"] == "ACCESS_DENIED"
    assert "accessToken" not in str(body)


@pytest.mark.asyncio
async def test_allowed_user_gets_working_session(client, auth_enabled):
    await UserRepository.upsert_authorization("octocat", None, True)
    response = await _sign_in(client)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["tokenType"] == "bearer"
    assert data["user"]["githubUsername"] == "octocat"
    headers = {"Authorization": f"Bearer {data['accessToken']}"}

    session = await client.get("/api/v1/auth/session", headers=headers)
    assert session.status_code == 200
    assert session.json()["data"]["user"]["name"] == "Mona"

    experiments = await client.get("/api/v1/experiments", headers=headers)
    assert experiments.status_code == 200


@pytest.mark.asyncio
async def test_revoked_user_is_refused(client, auth_enabled):
    await UserRepository.upsert_authorization("octocat", None, True)
    token = (await _sign_in(client)).json()["data"]["accessToken"]
    await UserRepository.upsert_authorization("octocat", None, False)

    response = await client.get("/api/v1/experiments", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "ACCESS_DENIED"


@pytest.mark.asyncio
async def test_callback_checks_proxy_secret(client, auth_enabled, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "AUTH_PROXY_SECRET", "s3cret")
    await UserRepository.upsert_authorization("octocat", None, True)

    missing = await _sign_in(client)
    assert missing.status_code == 401

    response = await client.post(
        "/api/v1/auth/callback",
        json={"provider": "github", "login": "octocat"},
        headers={"X-Auth-Proxy-Secret": "s3cret"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_admin_endpoints_require_admin(client, auth_enabled, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "ADMIN_USERNAMES", "root-admin")
    await UserRepository.upsert_authorization("octocat", None, True)
    await UserRepository.upsert_authorization("root-admin", None, True)

    member_token = (await _sign_in(client, "octocat")).json()["data"]["accessToken"]
    forbidden = await client.get("/api/v1/admin/users", headers={"Authorization": f"Bearer {member_token}"})
    assert forbidden.status_code == 403
    assert forbidden.json()["detail"]["code"] == "FORBIDDEN"

    admin_token = (await _sign_in(client, "root-admin")).json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {admin_token}"}
    granted = await client.post("/api/v1/admin/users", json={"githubUsername": "newbie"}, headers=headers)
    assert granted.status_code == 200
    assert granted.json()["data"]["message"] == "User authorized successfully"
    assert granted.json()["data"]["user"]["isAuthorized"] is True

    revoked = await client.post(
        "/api/v1/admin/users",
        json={"githubUsername": "newbie", "authorize": False},
        headers=headers,
    )
    assert revoked.json()["data"]["message"] == "User unauthorized successfully"

    listing = await client.get("/api/v1/admin/users", headers=headers)
    assert listing.status_code == 200
    assert {user["githubUsername"] for user in listing.json()["data"]["users"]} == {"octocat", "root-admin", "newbie"}


@pytest.mark.asyncio
async def test_admin_upsert_requires_identity(client):
    response = await client.post("/api/v1/admin/users", json={"authorize": True})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_upsert_merges_username_into_email_row(client):
    first = await client.post("/api/v1/admin/users", json={"email": "mona@example.com"})
    assert first.status_code == 200
    user_id = first.json()["data"]["user"]["id"]

    merged = await client.post("/api/v1/admin/users", json={"githubUsername": "octocat", "email": "mona@example.com"})
    assert merged.status_code == 200
    user = merged.json()["data"]["user"]
    assert user["id"] == user_id
    assert user["githubUsername"] == "octocat"
    assert user["email"] == "mona@example.com"

    listing = await client.get("/api/v1/admin/users")
    assert listing.json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_admin_upsert_rejects_identifiers_of_two_users(client):
    await client.post("/api/v1/admin/users", json={"email": "mona@example.com"})
    await client.post("/api/v1/admin/users", json={"githubUsername": "octocat"})

    response = await client.post("/api/v1/admin/users", json={"githubUsername": "octocat", "email": "mona@example.com"})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "USER_CONFLICT"


@pytest.mark.asyncio
async def test_callback_succeeds_when_email_belongs_to_other_row(client, auth_enabled):
    await UserRepository.upsert_authorization(None, "mona@example.com", True)
    await UserRepository.upsert_authorization("octocat", None, True)

    response = await client.post(
        "/api/v1/auth/callback",
        json={"provider": "github", "login": "octocat", "email": "mona@example.com"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["accessToken"]
