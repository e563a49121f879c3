"""
LeadDesk CRM - Routes Users
Account CRUD inside the reporting hierarchy.

- Admin sees and edits everyone
- other roles see / edit themselves and the accounts below them
- role, is_active and reporting_to are Admin-only, self included
"""

import logging
from fastapi import APIRouter, HTTPException, Depends
from typing import Optional

from config import db, hash_password, now_iso, new_id
from models.auth import UserCreate, UserUpdate, public_user
from models.role import UserRole, can_create_role, get_creatable_roles, get_reporting_role, get_role_display_name
from routes.auth import get_current_user
from services.activity_logger import log_activity
from services.hierarchy import (
    USER_PROJECTION,
    can_manage_user,
    get_assignable_user_ids,
    get_manageable_users,
    get_orphaned_users,
    get_subordinate_ids,
    get_team_users,
    get_valid_reporting_to_options,
    validate_hierarchy,
)
from services.permissions import ensure_admin_only_fields, require_admin, user_is_admin
from services.scope import get_scoped_user

logger = logging.getLogger("users")

router = APIRouter(prefix="/users", tags=["Users"])


# ==================== HELPERS ====================

async def _lead_counts(user_ids) -> dict:
    rows = await db.leads.aggregate([
        {"$match": {"assigned_user": {"$in": list(user_ids)}, "is_deleted": False}},
        {"$group": {"_id": "$assigned_user", "count": {"$sum": 1}}},
    ]).to_list(None)
    return {r["_id"]: r["count"] for r in rows}


async def _email_taken(email: str, exclude_id: Optional[str] = None) -> bool:
    query = {"email": email, "is_deleted": False}
    if exclude_id:
        query["id"] = {"$ne": exclude_id}
    return await db.users.find_one(query, {"_id": 0, "id": 1}) is not None


# ==================== LIST / LOOKUPS ====================

@router.get("")
async def list_users(user: dict = Depends(get_current_user)):
    """Admin: tous les comptes. Autres: soi-même + subordonnés."""
    if user_is_admin(user):
        users = await db.users.find({"is_deleted": False}, USER_PROJECTION) \
            .sort("created_at", -1).to_list(None)
    else:
        users = [user] + await get_manageable_users(user["id"])

    counts = await _lead_counts(u["id"] for u in users)
    for u in users:
        u["lead_count"] = counts.get(u["id"], 0)

    return {"users": users, "count": len(users)}


@router.get("/creatable-roles")
async def list_creatable_roles(user: dict = Depends(get_current_user)):
    roles = get_creatable_roles(user["role"])
    return {
        "roles": [
            {
                "role": r.value,
                "display_name": get_role_display_name(r),
                "reports_to": get_reporting_role(r).value if get_reporting_role(r) else None,
            }
            for r in roles
        ]
    }


@router.get("/reporting-options")
async def list_reporting_options(
    role: UserRole,
    exclude: Optional[str] = None,
    user: dict = Depends(get_current_user)
):
    """Comptes pouvant servir de manager pour `role` (sélecteur)."""
    options = await get_valid_reporting_to_options(role, exclude)

    if not user_is_admin(user):
        reachable = await get_subordinate_ids(user["id"])
        reachable.add(user["id"])
        options = [o for o in options if o["id"] in reachable]

    return {"users": options, "count": len(options)}


@router.get("/team")
async def list_team(user: dict = Depends(get_current_user)):
    """Rapports directs du compte courant."""
    team = await get_team_users(user["id"])
    return {"users": team, "count": len(team)}


@router.get("/assignable")
async def list_assignable(user: dict = Depends(get_current_user)):
    """Comptes auxquels le compte courant peut assigner un lead."""
    ids = await get_assignable_user_ids(user["id"])
    users = await db.users.find(
        {"id": {"$in": list(ids)}, "is_deleted": False}, USER_PROJECTION
    ).sort("name", 1).to_list(None)
    return {"users": users, "count": len(users)}


@router.get("/orphans")
async def list_orphans(user: dict = Depends(require_admin())):
    """Comptes dont le manager est absent, supprimé ou désactivé."""
    orphans = await get_orphaned_users()
    return {"users": orphans, "count": len(orphans)}


# ==================== CRUD ====================

@router.post("", status_code=201)
async def create_user(data: UserCreate, user: dict = Depends(get_current_user)):
    """Créer un compte dans sa propre branche de la hiérarchie."""
    if not can_create_role(user["role"], data.role):
        raise HTTPException(status_code=403, detail="Cannot create a user with this role")

    if await _email_taken(data.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    # Scope first: a manager outside the caller's branch, missing or not,
    # gets the same answer
    if not user_is_admin(user) and data.reporting_to and data.reporting_to != user["id"]:
        if not await can_manage_user(user["id"], data.reporting_to):
            raise HTTPException(status_code=403, detail="Cannot attach a user outside your team")

    check = await validate_hierarchy(data.role, data.reporting_to)
    if not check.valid:
        raise HTTPException(status_code=400, detail=check.error)

    new_user = {
        "id": new_id(),
        "name": data.name,
        "email": data.email,
        "password": hash_password(data.password),
        "role": data.role.value,
        "reporting_to": data.reporting_to,
        "is_active": True,
        "is_deleted": False,
        "created_by": user["id"],
        "created_at": now_iso(),
        "updated_at": now_iso(),
    }

    await db.users.insert_one(new_user)

    await log_activity(
        actor=user,
        action="create_user",
        target=new_user,
        details={"role": new_user["role"], "reporting_to": new_user["reporting_to"]}
    )

    return {"success": True, "user": public_user(new_user)}


@router.get("/{user_id}")
async def get_user_detail(user_id: str, user: dict = Depends(get_current_user)):
    target = await get_scoped_user(user, user_id)
    return {"user": target}


@router.patch("/{user_id}")
async def update_user(user_id: str, data: UserUpdate, user: dict = Depends(get_current_user)):
    """Mettre à jour un compte (soi-même ou subordonné)."""
    target = await get_scoped_user(user, user_id)

    fields = data.model_fields_set
    ensure_admin_only_fields(user, fields)

    update_data = {}

    if data.name is not None:
        update_data["name"] = data.name

    if data.email is not None and data.email != target.get("email"):
        if await _email_taken(data.email, exclude_id=user_id):
            raise HTTPException(status_code=400, detail="User with this email already exists")
        update_data["email"] = data.email

    new_role = data.role.value if data.role is not None else target["role"]
    new_reporting_to = (data.reporting_to or None) if "reporting_to" in fields else target.get("reporting_to")
    role_changed = new_role != target["role"]

    if role_changed or new_reporting_to != target.get("reporting_to"):
        check = await validate_hierarchy(new_role, new_reporting_to, user_id)
        if not check.valid:
            raise HTTPException(status_code=400, detail=check.error)

        if role_changed:
            for report in await get_team_users(user_id):
                expected = get_reporting_role(report["role"])
                if expected is None or expected.value != new_role:
                    raise HTTPException(
                        status_code=400,
                        detail="Reassign this user's direct reports before changing their role"
                    )

        update_data["role"] = new_role
        update_data["reporting_to"] = new_reporting_to

    if data.is_active is not None:
        if not data.is_active and user_id == user["id"]:
            raise HTTPException(status_code=400, detail="Cannot deactivate your own account")
        update_data["is_active"] = data.is_active

    if not update_data:
        return {"success": True, "user": public_user(target)}

    update_data["updated_by"] = user["id"]
    update_data["updated_at"] = now_iso()

    await db.users.update_one({"id": user_id, "is_deleted": False}, {"$set": update_data})

    if update_data.get("is_active") is False:
        await db.sessions.delete_many({"user_id": user_id})

    await log_activity(
        actor=user,
        action="update_user",
        target=target,
        details={k: v for k, v in update_data.items() if k not in ("updated_at", "updated_by")}
    )

    updated = await db.users.find_one({"id": user_id}, USER_PROJECTION)
    return {"success": True, "user": public_user(updated)}


@router.delete("/{user_id}")
async def delete_user(user_id: str, user: dict = Depends(require_admin())):
    """Suppression logique (Admin uniquement)."""
    target = await db.users.find_one({"id": user_id, "is_deleted": False}, USER_PROJECTION)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    if user_id == user["id"]:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    await db.users.update_one(
        {"id": user_id},
        {"$set": {
            "is_deleted": True,
            "updated_by": user["id"],
            "updated_at": now_iso(),
            "deleted_at": now_iso(),
        }}
    )
    await db.sessions.delete_many({"user_id": user_id})

    reports = await db.users.count_documents({"reporting_to": user_id, "is_deleted": False})
    if reports:
        logger.warning(f"[ORPHAN_USER] deleted user={user_id} still has {reports} direct reports")

    await log_activity(
        actor=user,
        action="delete_user",
        target=target,
        details={"orphaned_reports": reports}
    )

    return {"success": True, "orphaned_reports": reports}
