"""
LeadDesk CRM - Role gates
Capability checks that depend on the actor's role only, never on where
they sit in the hierarchy. Hierarchy-dependent checks live in services.scope.
"""

import logging
from typing import Iterable
from fastapi import Depends, HTTPException

from models.role import UserRole, is_top_role

logger = logging.getLogger("permissions")

# Fields only an Admin may change on any account, self included
ADMIN_ONLY_USER_FIELDS = ("role", "is_active", "reporting_to")


def user_is_admin(user: dict) -> bool:
    role = user.get("role")
    return bool(role) and is_top_role(role)


def ensure_admin_only_fields(user: dict, fields: Iterable[str]):
    """403 if a non-Admin tries to touch role / is_active / reporting_to."""
    if user_is_admin(user):
        return
    touched = [f for f in fields if f in ADMIN_ONLY_USER_FIELDS]
    if touched:
        logger.warning(f"[ROLE_DENIED] user={user.get('email')} fields={touched}")
        raise HTTPException(status_code=403, detail="Only an admin can change role, status or manager")


# ════════════════════════════════════════════════════════════════════════
# FASTAPI DEPENDENCIES
# ════════════════════════════════════════════════════════════════════════

def require_roles(*roles: UserRole):
    """
    FastAPI dependency factory.
    Usage: user: dict = Depends(require_roles(UserRole.MANAGER, UserRole.TEAM_LEADER))
    """
    from routes.auth import get_current_user

    allowed = {r.value for r in roles}

    async def _check(user: dict = Depends(get_current_user)):
        if user.get("role") not in allowed:
            logger.warning(
                f"[ROLE_DENIED] user={user.get('email')} "
                f"role={user.get('role')} allowed={sorted(allowed)}"
            )
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _check


def require_admin():
    """FastAPI dependency: only Admin allowed."""
    return require_roles(UserRole.ADMIN)
