"""
LeadDesk CRM - Hierarchy Resolver & Validator

Resolves, for an actor, the accounts below them in the reporting tree
and validates (role, reporting_to) edits before they are written.

Scope is recomputed from the users collection on every call. Nothing
here is cached across requests.

Conventions:
- subordinate ids NEVER contain the actor itself
- the assignable set of a non-Admin actor ALWAYS contains the actor
  (when active): "my own leads" and "my team's leads" go through the
  same membership test
- reporting_to is a weak reference: a missing or deleted manager means
  "no manager" for traversal, never an error
"""

import logging
from typing import List, Optional, Set
from pydantic import BaseModel

from config import db
from models.role import (
    UserRole,
    get_reporting_role,
    get_role_display_name,
    is_top_role,
)

logger = logging.getLogger("hierarchy")

USER_PROJECTION = {"_id": 0, "password": 0}


class HierarchyCheck(BaseModel):
    """Result of validate_hierarchy - business rule failures are returned, never raised"""
    valid: bool
    error: Optional[str] = None


# ════════════════════════════════════════════════════════════════════════
# LOOKUPS
# ════════════════════════════════════════════════════════════════════════

async def get_user(user_id: Optional[str]) -> Optional[dict]:
    """Non-deleted account by id, None otherwise."""
    if not user_id:
        return None
    return await db.users.find_one({"id": user_id, "is_deleted": False}, USER_PROJECTION)


# ════════════════════════════════════════════════════════════════════════
# RESOLVER
# ════════════════════════════════════════════════════════════════════════

async def get_subordinate_ids(user_id: str) -> Set[str]:
    """
    All non-deleted accounts reporting (directly or not) to user_id.

    Breadth-first, one query per level. An id is expanded at most once,
    so a corrupted graph (A -> B -> A) still terminates with a finite set.
    """
    seen: Set[str] = set()
    frontier = [user_id]
    cycle_detected = False

    while frontier:
        reports = await db.users.find(
            {"reporting_to": {"$in": frontier}, "is_deleted": False},
            {"_id": 0, "id": 1}
        ).to_list(None)

        next_frontier = []
        for report in reports:
            rid = report["id"]
            if rid == user_id or rid in seen:
                cycle_detected = True
                continue
            seen.add(rid)
            next_frontier.append(rid)
        frontier = next_frontier

    if cycle_detected:
        logger.warning(
            f"[HIERARCHY_CYCLE] reporting graph below user={user_id} contains a cycle, "
            f"returning {len(seen)} subordinates"
        )

    return seen


async def get_manageable_users(user_id: str) -> List[dict]:
    """Admin: every non-deleted account. Others: their subordinates. Sorted by name."""
    user = await get_user(user_id)
    if not user:
        return []

    if is_top_role(user["role"]):
        query = {"is_deleted": False}
    else:
        subordinate_ids = await get_subordinate_ids(user_id)
        if not subordinate_ids:
            return []
        query = {"id": {"$in": list(subordinate_ids)}, "is_deleted": False}

    return await db.users.find(query, USER_PROJECTION).sort("name", 1).to_list(None)


async def get_assignable_user_ids(user_id: str) -> Set[str]:
    """
    Accounts the actor may set as a lead owner - also the lead visibility set.
    Admin: every active non-deleted account. Others: active subordinates + self.
    """
    user = await get_user(user_id)
    if not user:
        return set()

    if is_top_role(user["role"]):
        users = await db.users.find(
            {"is_deleted": False, "is_active": True}, {"_id": 0, "id": 1}
        ).to_list(None)
        return {u["id"] for u in users}

    manageable = await get_manageable_users(user_id)
    assignable = {u["id"] for u in manageable if u.get("is_active", True)}
    assignable.discard(user_id)
    if user.get("is_active", True):
        assignable.add(user_id)
    return assignable


async def can_manage_user(manager_id: str, target_user_id: str) -> bool:
    """True when target is below manager in the tree (Admin: any non-deleted account)."""
    if not manager_id or manager_id == target_user_id:
        return False

    manager = await get_user(manager_id)
    if not manager:
        return False

    if is_top_role(manager["role"]):
        return await get_user(target_user_id) is not None

    return target_user_id in await get_subordinate_ids(manager_id)


async def can_assign_to_user(assigner_id: str, target_user_id: str) -> bool:
    assigner = await get_user(assigner_id)
    if not assigner:
        return False

    if is_top_role(assigner["role"]):
        return True

    return target_user_id in await get_assignable_user_ids(assigner_id)


async def get_team_users(user_id: str) -> List[dict]:
    """Direct reports only."""
    return await db.users.find(
        {"reporting_to": user_id, "is_deleted": False}, USER_PROJECTION
    ).sort("name", 1).to_list(None)


async def get_valid_reporting_to_options(role, exclude_user_id: Optional[str] = None) -> List[dict]:
    """Active accounts holding the role that `role` must report to."""
    reporting_role = get_reporting_role(role)
    if not reporting_role:
        return []

    query = {
        "role": reporting_role.value,
        "is_deleted": False,
        "is_active": True,
    }
    if exclude_user_id:
        query["id"] = {"$ne": exclude_user_id}

    return await db.users.find(query, USER_PROJECTION).sort("name", 1).to_list(None)


async def get_orphaned_users() -> List[dict]:
    """
    Non-Admin accounts whose manager is missing, deleted or inactive.
    Those accounts are out of every non-Admin scope until reassigned.
    """
    users = await db.users.find(
        {"is_deleted": False, "role": {"$ne": UserRole.ADMIN.value}}, USER_PROJECTION
    ).sort("name", 1).to_list(None)

    manager_ids = list({u["reporting_to"] for u in users if u.get("reporting_to")})
    managers = await db.users.find(
        {"id": {"$in": manager_ids}}, {"_id": 0, "id": 1, "is_deleted": 1, "is_active": 1}
    ).to_list(None)
    by_id = {m["id"]: m for m in managers}

    orphans = []
    for u in users:
        manager_id = u.get("reporting_to")
        manager = by_id.get(manager_id) if manager_id else None
        if not manager_id:
            reason = "no_manager"
        elif not manager:
            reason = "manager_missing"
        elif manager.get("is_deleted"):
            reason = "manager_deleted"
        elif not manager.get("is_active", True):
            reason = "manager_inactive"
        else:
            continue
        logger.warning(f"[ORPHAN_USER] user={u['id']} reporting_to={manager_id} reason={reason}")
        orphans.append({**u, "orphan_reason": reason})

    return orphans


# ════════════════════════════════════════════════════════════════════════
# VALIDATOR
# ════════════════════════════════════════════════════════════════════════

async def validate_hierarchy(
    role,
    reporting_to_id: Optional[str],
    user_id: Optional[str] = None
) -> HierarchyCheck:
    """
    Accept or reject a (role, reporting_to) edge. First failing rule wins.

    Args:
        role: role of the account (or the role being created)
        reporting_to_id: proposed manager id, None for no manager
        user_id: existing account id on edits, None on creation
    """
    if not reporting_to_id:
        if not is_top_role(role):
            return _reject("User must have a manager", role, reporting_to_id, user_id)
        return HierarchyCheck(valid=True)

    manager = await get_user(reporting_to_id)
    if not manager:
        return _reject("Invalid manager", role, reporting_to_id, user_id)

    expected_role = get_reporting_role(role)
    if expected_role and manager["role"] != expected_role.value:
        return _reject(
            f"{get_role_display_name(role)} must report to {get_role_display_name(expected_role)}, "
            f"not {get_role_display_name(manager['role'])}",
            role, reporting_to_id, user_id
        )

    if user_id and user_id == reporting_to_id:
        return _reject("User cannot report to themselves", role, reporting_to_id, user_id)

    if user_id and reporting_to_id in await get_subordinate_ids(user_id):
        return _reject("Cannot create circular reporting structure", role, reporting_to_id, user_id)

    return HierarchyCheck(valid=True)


def _reject(error: str, role, reporting_to_id, user_id) -> HierarchyCheck:
    logger.info(
        f"[HIERARCHY_REJECTED] role={getattr(role, 'value', role)} "
        f"reporting_to={reporting_to_id} user={user_id} reason={error}"
    )
    return HierarchyCheck(valid=False, error=error)
