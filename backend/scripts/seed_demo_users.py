"""
LeadDesk CRM - Seed Demo Users (dev/staging only)
Creates the first Admin and one demo branch with predictable credentials:

    admin@demo.local
    └── manager@demo.local
        └── leader@demo.local
            ├── alice@demo.local
            └── bruno@demo.local

Run (from backend/): python -m scripts.seed_demo_users
Reset: python -m scripts.seed_demo_users --reset
"""

import asyncio
import sys

from motor.motor_asyncio import AsyncIOMotorClient

from config import MONGO_URL, DB_NAME, hash_password, new_id, now_iso

# Same password for all demo accounts
DEMO_PASSWORD = "LeadDesk2026!"

# reporting_to is an email of a previous entry, resolved at seed time
DEMO_USERS = [
    {"email": "admin@demo.local",   "name": "Demo Admin",   "role": "admin",       "reporting_to": None},
    {"email": "manager@demo.local", "name": "Demo Manager", "role": "manager",     "reporting_to": "admin@demo.local"},
    {"email": "leader@demo.local",  "name": "Demo Leader",  "role": "team-leader", "reporting_to": "manager@demo.local"},
    {"email": "alice@demo.local",   "name": "Alice Demo",   "role": "user",        "reporting_to": "leader@demo.local"},
    {"email": "bruno@demo.local",   "name": "Bruno Demo",   "role": "user",        "reporting_to": "leader@demo.local"},
]

DEMO_EMAIL_REGEX = "@demo\\.local$"


async def reset(db):
    """Delete all demo.local accounts and their sessions"""
    users = await db.users.find({"email": {"$regex": DEMO_EMAIL_REGEX}}, {"_id": 0, "id": 1}).to_list(None)
    ids = [u["id"] for u in users]
    await db.sessions.delete_many({"user_id": {"$in": ids}})
    result = await db.users.delete_many({"id": {"$in": ids}})
    print(f"Deleted {result.deleted_count} demo users")
    return result.deleted_count


async def seed(db):
    """Create/update demo users. Returns the seeded documents (without password)."""
    ids_by_email = {}
    seeded = []

    for u in DEMO_USERS:
        doc = {
            "email": u["email"],
            "name": u["name"],
            "password": hash_password(DEMO_PASSWORD),
            "role": u["role"],
            "reporting_to": ids_by_email.get(u["reporting_to"]),
            "is_active": True,
            "is_deleted": False,
            "updated_at": now_iso(),
        }

        existing = await db.users.find_one({"email": u["email"]}, {"_id": 0, "id": 1})
        if existing:
            doc["id"] = existing["id"]
            await db.users.update_one({"id": existing["id"]}, {"$set": doc})
            print(f"  Updated: {u['email']} ({u['role']})")
        else:
            doc["id"] = new_id()
            doc["created_at"] = now_iso()
            await db.users.insert_one(doc)
            print(f"  Created: {u['email']} ({u['role']})")

        ids_by_email[u["email"]] = doc["id"]
        seeded.append({k: v for k, v in doc.items() if k not in ("_id", "password")})

    return seeded


async def main():
    client = AsyncIOMotorClient(MONGO_URL)
    db = client[DB_NAME]

    if "--reset" in sys.argv:
        await reset(db)
        print("Reset complete. Run without --reset to re-seed.")
    else:
        await seed(db)
        print(f"\n{len(DEMO_USERS)} demo users seeded. Password for all: {DEMO_PASSWORD}")
        print("Reset: python -m scripts.seed_demo_users --reset")

    client.close()


if __name__ == "__main__":
    asyncio.run(main())
