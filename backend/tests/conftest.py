"""
LeadDesk CRM - Test fixtures

The Motor database handle is swapped for mongomock_motor before any
service module is imported, so `from config import db` everywhere
resolves to the in-memory store.
"""

import pytest
import pytest_asyncio
import httpx
from datetime import datetime, timezone, timedelta
from mongomock_motor import AsyncMongoMockClient

import config

config.client = AsyncMongoMockClient()
config.db = config.client["leaddesk_test"]

from config import db, generate_token, hash_password, new_id, now_iso  # noqa: E402

TEST_PASSWORD = "TestPass123!"


@pytest_asyncio.fixture(autouse=True)
async def clean_db():
    for name in ("users", "leads", "sessions", "activity_logs"):
        await db[name].delete_many({})
    yield


@pytest.fixture
def make_user():
    """Insert an account directly: await make_user("manager", name="M1", reporting_to=admin["id"])"""
    async def _make(role, name=None, reporting_to=None, is_active=True, is_deleted=False, email=None):
        user_id = new_id()
        doc = {
            "id": user_id,
            "name": name or f"{role}-{user_id[:6]}",
            "email": email or f"{user_id[:8]}@test.com",
            "password": hash_password(TEST_PASSWORD),
            "role": role,
            "reporting_to": reporting_to,
            "is_active": is_active,
            "is_deleted": is_deleted,
            "created_at": now_iso(),
            "updated_at": now_iso(),
        }
        await db.users.insert_one(doc)
        doc.pop("_id", None)
        doc.pop("password", None)
        return doc
    return _make


@pytest.fixture
def make_lead():
    async def _make(assigned_user, created_by=None, name="Lead", status="new", is_deleted=False, follow_ups=None):
        doc = {
            "id": new_id(),
            "name": name,
            "email": None,
            "phone": "0600000000",
            "address": "1 rue du Test",
            "source": "manual",
            "status": status,
            "assigned_user": assigned_user,
            "created_by": created_by or assigned_user,
            "follow_ups": follow_ups or [],
            "comments": [],
            "activity_logs": [],
            "is_deleted": is_deleted,
            "created_at": now_iso(),
            "updated_at": now_iso(),
        }
        await db.leads.insert_one(doc)
        doc.pop("_id", None)
        return doc
    return _make


@pytest_asyncio.fixture
async def org(make_user):
    """
    admin
    ├── m1 (manager)
    │   └── t1 (team-leader)
    │       ├── u1 (user)
    │       └── u2 (user)
    └── m2 (manager)
        └── t2 (team-leader)
            └── u3 (user)
    """
    admin = await make_user("admin", name="Admin")
    m1 = await make_user("manager", name="Manager One", reporting_to=admin["id"])
    m2 = await make_user("manager", name="Manager Two", reporting_to=admin["id"])
    t1 = await make_user("team-leader", name="Leader One", reporting_to=m1["id"])
    t2 = await make_user("team-leader", name="Leader Two", reporting_to=m2["id"])
    u1 = await make_user("user", name="User One", reporting_to=t1["id"])
    u2 = await make_user("user", name="User Two", reporting_to=t1["id"])
    u3 = await make_user("user", name="User Three", reporting_to=t2["id"])
    return {"admin": admin, "m1": m1, "m2": m2, "t1": t1, "t2": t2, "u1": u1, "u2": u2, "u3": u3}


@pytest.fixture
def login_as():
    """Open a session for an account and return the auth headers."""
    async def _login(user, expired=False):
        token = generate_token()
        delta = timedelta(days=-1) if expired else timedelta(days=1)
        await db.sessions.insert_one({
            "token": token,
            "user_id": user["id"],
            "created_at": now_iso(),
            "expires_at": (datetime.now(timezone.utc) + delta).isoformat(),
        })
        return {"Authorization": f"Bearer {token}"}
    return _login


@pytest_asyncio.fixture
async def api():
    from server import app
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
