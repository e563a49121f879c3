"""
LeadDesk CRM - Request gate tests
Tests:
1. Login: success, wrong password, inactive account
2. Session resolution: Bearer, cookie, missing, expired
3. Inactive / deleted account with a live session
4. Logout revokes the session
5. /auth/me exposes role capabilities
6. /auth/activity-logs is Admin only
Run: cd backend && pytest tests/test_auth_api.py -v
"""

import pytest

from config import db

PASSWORD = "TestPass123!"


# ═══════════════════════════════════════════════════════════════
# 1. LOGIN
# ═══════════════════════════════════════════════════════════════

class TestLogin:

    @pytest.mark.asyncio
    async def test_login_returns_token_and_public_user(self, api, make_user):
        await make_user("manager", name="Marie", email="marie@test.com")

        res = await api.post("/api/auth/login", json={"email": " Marie@Test.com ", "password": PASSWORD})
        assert res.status_code == 200, res.text
        data = res.json()
        assert data["success"] is True
        assert data["token"]
        assert data["user"]["email"] == "marie@test.com"
        assert data["user"]["role"] == "manager"
        assert "password" not in data["user"]

        assert await db.sessions.count_documents({"token": data["token"]}) == 1
        assert await db.activity_logs.count_documents({"action": "login"}) == 1

    @pytest.mark.asyncio
    async def test_wrong_password(self, api, make_user):
        await make_user("user", email="bob@test.com")
        res = await api.post("/api/auth/login", json={"email": "bob@test.com", "password": "nope-nope"})
        assert res.status_code == 401
        assert res.json()["detail"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unknown_email(self, api):
        res = await api.post("/api/auth/login", json={"email": "ghost@test.com", "password": PASSWORD})
        assert res.status_code == 401

    @pytest.mark.asyncio
    async def test_inactive_account(self, api, make_user):
        await make_user("user", email="off@test.com", is_active=False)
        res = await api.post("/api/auth/login", json={"email": "off@test.com", "password": PASSWORD})
        assert res.status_code == 403

    @pytest.mark.asyncio
    async def test_deleted_account(self, api, make_user):
        await make_user("user", email="gone@test.com", is_deleted=True)
        res = await api.post("/api/auth/login", json={"email": "gone@test.com", "password": PASSWORD})
        assert res.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_email_is_422(self, api):
        res = await api.post("/api/auth/login", json={"email": "not-an-email", "password": PASSWORD})
        assert res.status_code == 422


# ═══════════════════════════════════════════════════════════════
# 2. SESSION
# ═══════════════════════════════════════════════════════════════

class TestSession:

    @pytest.mark.asyncio
    async def test_no_token(self, api):
        res = await api.get("/api/auth/me")
        assert res.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_token(self, api):
        res = await api.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert res.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_session(self, api, org, login_as):
        headers = await login_as(org["u1"], expired=True)
        res = await api.get("/api/auth/me", headers=headers)
        assert res.status_code == 401
        assert res.json()["detail"] == "Session expired"

    @pytest.mark.asyncio
    async def test_cookie_token(self, api, org, login_as):
        headers = await login_as(org["t1"])
        token = headers["Authorization"].split(" ", 1)[1]
        res = await api.get("/api/auth/me", headers={"Cookie": f"token={token}"})
        assert res.status_code == 200
        assert res.json()["id"] == org["t1"]["id"]

    @pytest.mark.asyncio
    async def test_deactivated_with_live_session(self, api, org, login_as):
        headers = await login_as(org["u1"])
        await db.users.update_one({"id": org["u1"]["id"]}, {"$set": {"is_active": False}})
        res = await api.get("/api/auth/me", headers=headers)
        assert res.status_code == 403

    @pytest.mark.asyncio
    async def test_deleted_with_live_session(self, api, org, login_as):
        headers = await login_as(org["u1"])
        await db.users.update_one({"id": org["u1"]["id"]}, {"$set": {"is_deleted": True}})
        res = await api.get("/api/auth/me", headers=headers)
        assert res.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_revokes_session(self, api, org, login_as):
        headers = await login_as(org["m1"])
        res = await api.post("/api/auth/logout", headers=headers)
        assert res.status_code == 200

        res = await api.get("/api/auth/me", headers=headers)
        assert res.status_code == 401


class TestMe:

    @pytest.mark.asyncio
    async def test_me_capabilities(self, api, org, login_as):
        res = await api.get("/api/auth/me", headers=await login_as(org["m1"]))
        data = res.json()
        assert data["role"] == "manager"
        assert data["role_display_name"] == "Manager"
        assert data["creatable_roles"] == ["team-leader", "user"]
        assert data["reporting_to"] == org["admin"]["id"]

    @pytest.mark.asyncio
    async def test_leaf_creates_nothing(self, api, org, login_as):
        res = await api.get("/api/auth/me", headers=await login_as(org["u1"]))
        assert res.json()["creatable_roles"] == []


class TestActivityLogs:

    @pytest.mark.asyncio
    async def test_admin_only(self, api, org, login_as):
        res = await api.get("/api/auth/activity-logs", headers=await login_as(org["m1"]))
        assert res.status_code == 403

        res = await api.get("/api/auth/activity-logs", headers=await login_as(org["admin"]))
        assert res.status_code == 200
        assert res.json()["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_account_changes_are_audited(self, api, org, login_as):
        admin = await login_as(org["admin"])
        await api.patch(f"/api/users/{org['u1']['id']}", json={"name": "Renamed"}, headers=admin)
        await api.delete(f"/api/users/{org['u2']['id']}", headers=admin)

        res = await api.get(f"/api/auth/activity-logs?target_id={org['u2']['id']}", headers=admin)
        logs = res.json()["logs"]
        assert [l["action"] for l in logs] == ["delete_user"]
        assert logs[0]["user_id"] == org["admin"]["id"]
        assert logs[0]["entity_name"] == org["u2"]["email"]

        res = await api.get("/api/auth/activity-logs?action=update_user", headers=admin)
        assert res.json()["pagination"]["total"] == 1
