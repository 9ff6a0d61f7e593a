"""
Integration tests for the authentication flow.

Verifies Register -> Login -> Me -> Refresh -> Logout, and admin deactivation.
"""

import pytest
from sqlalchemy import select

from fleetops.app.models.audit_log import AuditLog
from fleetops.app.models.enums import UserRole
from fleetops.app.services.audit import AuditAction


def _register_payload(**overrides) -> dict:
    payload = {
        "email": "dana@fleetops.io",
        "user_name": "Dana.Ops",
        "password": "password123",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_admin_registration_blocked(client):
    """ADMIN role cannot be created via API."""
    response = await client.post("/v1/auth/register", json=_register_payload(role="ADMIN"))

    assert response.status_code == 403
    data = response.json()
    assert data["success"] is False
    assert data["error_code"] == "ERR_FORBIDDEN"
    assert "Admin users cannot be registered" in data["message"]


@pytest.mark.asyncio
async def test_register_defaults_to_financial_analyst(client):
    response = await client.post("/v1/auth/register", json=_register_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["role"] == UserRole.FINANCIAL_ANALYSTS.value
    assert data["user_name"] == "dana.ops"
    assert data["token_type"] == "bearer"
    assert data["access_token"] and data["refresh_token"]


@pytest.mark.asyncio
async def test_register_with_role(client):
    response = await client.post("/v1/auth/register", json=_register_payload(role="DISPATCHER"))

    assert response.status_code == 201
    assert response.json()["data"]["role"] == "DISPATCHER"


@pytest.mark.asyncio
async def test_duplicate_registration_conflicts(client):
    assert (await client.post("/v1/auth/register", json=_register_payload())).status_code == 201

    same_name = await client.post("/v1/auth/register", json=_register_payload(email="other@fleetops.io"))
    assert same_name.status_code == 409
    assert same_name.json()["message"] == "Username already registered"

    same_email = await client.post("/v1/auth/register", json=_register_payload(user_name="someone"))
    assert same_email.status_code == 409
    assert same_email.json()["message"] == "Email already registered"


@pytest.mark.asyncio
async def test_register_validation(client):
    response = await client.post("/v1/auth/register", json=_register_payload(password="short"))
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"

    response = await client.post("/v1/auth/register", json=_register_payload(user_name="bad name!"))
    assert response.status_code == 422

    response = await client.post("/v1/auth/register", json=_register_payload(email="not-an-email"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_by_username_or_email_then_me(client):
    await client.post("/v1/auth/register", json=_register_payload(role="SAFETY_OFFICER"))

    by_name = await client.post("/v1/auth/login", json={"user_name": "DANA.OPS", "password": "password123"})
    assert by_name.status_code == 200

    by_email = await client.post(
        "/v1/auth/login", json={"user_name": "dana@fleetops.io", "password": "password123"}
    )
    assert by_email.status_code == 200
    token = by_email.json()["data"]["access_token"]

    me = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    me_data = me.json()["data"]
    assert me_data["user_name"] == "dana.ops"
    assert me_data["email"] == "dana@fleetops.io"
    assert me_data["role"] == "SAFETY_OFFICER"


@pytest.mark.asyncio
async def test_failed_login_is_audited(client, db_session):
    await client.post("/v1/auth/register", json=_register_payload())

    response = await client.post("/v1/auth/login", json={"user_name": "dana.ops", "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"

    result = await db_session.execute(select(AuditLog).where(AuditLog.action == AuditAction.LOGIN_FAILED))
    entry = result.scalar_one()
    assert entry.actor_username == "dana.ops"
    assert entry.meta_data["reason"] == "Invalid password"


@pytest.mark.asyncio
async def test_refresh_rotates_tokens(client):
    registered = (await client.post("/v1/auth/register", json=_register_payload())).json()["data"]
    old_refresh = registered["refresh_token"]

    response = await client.post("/v1/auth/refresh", json={"refresh_token": old_refresh})
    assert response.status_code == 200
    new_refresh = response.json()["data"]["refresh_token"]
    assert new_refresh != old_refresh

    # The previous refresh token was replaced
    replay = await client.post("/v1/auth/refresh", json={"refresh_token": old_refresh})
    assert replay.status_code == 401

    # An access token is not a refresh token
    wrong_type = await client.post("/v1/auth/refresh", json={"refresh_token": registered["access_token"]})
    assert wrong_type.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_access_token(client):
    registered = (await client.post("/v1/auth/register", json=_register_payload())).json()["data"]
    headers = {"Authorization": f"Bearer {registered['access_token']}"}

    response = await client.post("/v1/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"

    me = await client.get("/v1/auth/me", headers=headers)
    assert me.status_code == 401

    refresh = await client.post("/v1/auth/refresh", json={"refresh_token": registered["refresh_token"]})
    assert refresh.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_rejected(client):
    response = await client.get("/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_deactivation_cuts_off_live_tokens(client, db_session, admin_headers):
    registered = (await client.post("/v1/auth/register", json=_register_payload())).json()["data"]
    headers = {"Authorization": f"Bearer {registered['access_token']}"}
    assert (await client.get("/v1/auth/me", headers=headers)).status_code == 200

    response = await client.post(f"/v1/auth/users/{registered['user_id']}/deactivate", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False

    me = await client.get("/v1/auth/me", headers=headers)
    assert me.status_code == 401
    assert me.json()["message"] == "User access has been revoked"

    refresh = await client.post("/v1/auth/refresh", json={"refresh_token": registered["refresh_token"]})
    assert refresh.status_code == 401

    login = await client.post("/v1/auth/login", json={"user_name": "dana.ops", "password": "password123"})
    assert login.status_code == 403

    again = await client.post(f"/v1/auth/users/{registered['user_id']}/deactivate", headers=admin_headers)
    assert again.status_code == 400

    result = await db_session.execute(select(AuditLog).where(AuditLog.action == AuditAction.USER_DEACTIVATED))
    entry = result.scalar_one()
    assert entry.actor_username == "admin"
    assert entry.target_id == registered["user_id"]


@pytest.mark.asyncio
async def test_reactivated_user_can_sign_in_again(client, admin_headers):
    registered = (await client.post("/v1/auth/register", json=_register_payload())).json()["data"]
    user_id = registered["user_id"]
    await client.post(f"/v1/auth/users/{user_id}/deactivate", headers=admin_headers)

    response = await client.post(f"/v1/auth/users/{user_id}/reactivate", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is True

    login = await client.post("/v1/auth/login", json={"user_name": "dana.ops", "password": "password123"})
    assert login.status_code == 200
    token = login.json()["data"]["access_token"]
    me = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200

    again = await client.post(f"/v1/auth/users/{user_id}/reactivate", headers=admin_headers)
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_deactivation_is_admin_only(client, auth_headers, admin_headers):
    manager = await auth_headers(UserRole.FLEET_MANAGER)
    registered = (await client.post("/v1/auth/register", json=_register_payload())).json()["data"]

    response = await client.post(f"/v1/auth/users/{registered['user_id']}/deactivate", headers=manager)
    assert response.status_code == 403

    me = (await client.get("/v1/auth/me", headers=admin_headers)).json()["data"]
    response = await client.post(f"/v1/auth/users/{me['id']}/deactivate", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot deactivate yourself"

    response = await client.post("/v1/auth/users/9999/deactivate", headers=admin_headers)
    assert response.status_code == 404
