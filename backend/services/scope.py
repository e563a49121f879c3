"""
LeadDesk CRM - Access Scoping

Translates "current actor wants lead / account X" into a MongoDB filter,
an empty result, or a 404.

- Admin: every non-deleted lead, optional assigned_user narrowing
- leaf role: assigned_user == actor
- intermediate roles: assigned_user in get_assignable_user_ids(actor)

Out-of-scope single resources are reported as "not found", never as
"forbidden": the caller learns nothing about records outside its scope.
Writes carry the scope filter in the update itself, so a reassignment
or hierarchy edit landing between check and write cannot be bypassed.
"""

import logging
from typing import Iterable, List, Optional
from fastapi import HTTPException

from config import db
from models.role import is_leaf_role, is_top_role
from services.hierarchy import (
    USER_PROJECTION,
    can_assign_to_user,
    can_manage_user,
    get_assignable_user_ids,
    get_user,
)

logger = logging.getLogger("scope")

LEAD_PROJECTION = {"_id": 0}


def split_ids(value: Optional[str]) -> List[str]:
    """'a, b,,c' -> ['a', 'b', 'c'] (multi-select query params)"""
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


# ════════════════════════════════════════════════════════════════════════
# LEADS - READ SCOPE
# ════════════════════════════════════════════════════════════════════════

async def get_lead_owner_scope(user: dict) -> Optional[List[str]]:
    """
    Owner ids the actor can see leads of.
    None means "no restriction" (Admin).
    """
    if is_top_role(user["role"]):
        return None
    if is_leaf_role(user["role"]):
        return [user["id"]]
    return sorted(await get_assignable_user_ids(user["id"]))


async def build_lead_scope_query(
    user: dict,
    assigned_user: Optional[str] = None,
    assigned_users: Optional[Iterable[str]] = None,
) -> Optional[dict]:
    """
    Lead visibility filter for list queries.

    assigned_user (single, legacy): outside scope -> None (empty result)
    assigned_users (multi-select): out-of-scope ids are dropped,
        None if nothing is left

    Returns None when the result is known to be empty - the caller must
    not query the store with a widened filter in that case.
    """
    query = {"is_deleted": False}
    allowed = await get_lead_owner_scope(user)
    requested = list(dict.fromkeys(assigned_users or []))

    if assigned_user:
        if requested and assigned_user not in requested:
            return None
        if allowed is not None and assigned_user not in allowed:
            logger.info(
                f"[SCOPE_DENIED] user={user['id']} role={user['role']} "
                f"assigned_user filter outside scope"
            )
            return None
        query["assigned_user"] = assigned_user
        return query

    if requested:
        kept = requested if allowed is None else [i for i in requested if i in allowed]
        if len(kept) != len(requested):
            logger.info(
                f"[SCOPE_DENIED] user={user['id']} dropped {len(requested) - len(kept)} "
                f"assigned_users filter values outside scope"
            )
        if not kept:
            return None
        query["assigned_user"] = {"$in": kept}
        return query

    if allowed is None:
        return query
    if len(allowed) == 1:
        query["assigned_user"] = allowed[0]
    else:
        query["assigned_user"] = {"$in": allowed}
    return query


# ════════════════════════════════════════════════════════════════════════
# LEADS - SINGLE RESOURCE (READ + WRITE)
# ════════════════════════════════════════════════════════════════════════

async def lead_access_query(user: dict, lead_id: str) -> dict:
    """Filter matching lead_id only if the actor may read/mutate it."""
    query = {"id": lead_id, "is_deleted": False}
    allowed = await get_lead_owner_scope(user)
    if allowed is not None:
        query["assigned_user"] = {"$in": allowed}
    return query


async def get_scoped_lead(user: dict, lead_id: str, projection: Optional[dict] = None) -> dict:
    lead = await db.leads.find_one(
        await lead_access_query(user, lead_id), projection or LEAD_PROJECTION
    )
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


async def update_scoped_lead(user: dict, lead_id: str, update: dict) -> dict:
    """
    Apply `update` only if the lead is still in the actor's scope at write
    time. Scope check and write are the same query.
    """
    result = await db.leads.update_one(await lead_access_query(user, lead_id), update)
    if result.matched_count == 0:
        logger.info(f"[SCOPE_DENIED] user={user['id']} write on lead={lead_id} matched nothing")
        raise HTTPException(status_code=404, detail="Lead not found")
    return await db.leads.find_one({"id": lead_id}, LEAD_PROJECTION)


async def ensure_can_assign(user: dict, target_user_id: str) -> dict:
    """
    Raise unless `user` may make `target_user_id` a lead owner.
    Returns the target account.
    """
    if not await can_assign_to_user(user["id"], target_user_id):
        logger.warning(f"[SCOPE_DENIED] user={user['id']} cannot assign to {target_user_id}")
        raise HTTPException(status_code=403, detail="Cannot assign lead to this user")

    target = await get_user(target_user_id)
    if not target or not target.get("is_active", True):
        raise HTTPException(status_code=400, detail="Invalid assigned user")
    return target


# ════════════════════════════════════════════════════════════════════════
# ACCOUNTS
# ════════════════════════════════════════════════════════════════════════

async def can_view_user(user: dict, target_user_id: str) -> bool:
    if user["id"] == target_user_id:
        return True
    return await can_manage_user(user["id"], target_user_id)


async def get_scoped_user(user: dict, target_user_id: str) -> dict:
    """Self, Admin, or a manager above the target. Anything else is 404."""
    if not await can_view_user(user, target_user_id):
        raise HTTPException(status_code=404, detail="User not found")
    target = await db.users.find_one({"id": target_user_id, "is_deleted": False}, USER_PROJECTION)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    return target
