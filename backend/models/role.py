"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk CRM - Rôles & hiérarchie                                           ║
║                                                                              ║
║  Admin → Manager → Team Leader → User                                        ║
║                                                                              ║
║  RÈGLES:                                                                     ║
║  1. Chaque rôle (sauf Admin) rapporte à UN seul rôle                         ║
║  2. Le rang sert à l'affichage / tri, JAMAIS à l'autorisation                ║
║  3. Toute table ci-dessous couvre TOUS les rôles (vérifié à l'import)        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from enum import Enum
from typing import Dict, List, Optional


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    TEAM_LEADER = "team-leader"
    USER = "user"


TOP_ROLE = UserRole.ADMIN

# Higher number = more authority
ROLE_RANK: Dict[UserRole, int] = {
    UserRole.ADMIN: 4,
    UserRole.MANAGER: 3,
    UserRole.TEAM_LEADER: 2,
    UserRole.USER: 1,
}

CREATABLE_ROLES: Dict[UserRole, List[UserRole]] = {
    UserRole.ADMIN: [UserRole.MANAGER, UserRole.TEAM_LEADER, UserRole.USER],
    UserRole.MANAGER: [UserRole.TEAM_LEADER, UserRole.USER],
    UserRole.TEAM_LEADER: [UserRole.USER],
    UserRole.USER: [],
}

REPORTS_TO_ROLE: Dict[UserRole, Optional[UserRole]] = {
    UserRole.ADMIN: None,
    UserRole.MANAGER: UserRole.ADMIN,
    UserRole.TEAM_LEADER: UserRole.MANAGER,
    UserRole.USER: UserRole.TEAM_LEADER,
}

ROLE_DISPLAY_NAMES: Dict[UserRole, str] = {
    UserRole.ADMIN: "Admin",
    UserRole.MANAGER: "Manager",
    UserRole.TEAM_LEADER: "Team Leader",
    UserRole.USER: "User",
}

VALID_ROLES = [r.value for r in UserRole]


def _check_role_tables():
    """Adding a role without updating every table fails at import."""
    for name, table in (
        ("ROLE_RANK", ROLE_RANK),
        ("CREATABLE_ROLES", CREATABLE_ROLES),
        ("REPORTS_TO_ROLE", REPORTS_TO_ROLE),
        ("ROLE_DISPLAY_NAMES", ROLE_DISPLAY_NAMES),
    ):
        missing = [r.value for r in UserRole if r not in table]
        if missing:
            raise RuntimeError(f"{name} has no entry for roles: {missing}")

    # reports_to must walk down the ranks one step at a time
    for role, parent in REPORTS_TO_ROLE.items():
        if role == TOP_ROLE:
            if parent is not None:
                raise RuntimeError(f"{role.value} is the top role and cannot report to anyone")
            continue
        if parent is None or ROLE_RANK[parent] != ROLE_RANK[role] + 1:
            raise RuntimeError(f"{role.value} must report to the role directly above it")


_check_role_tables()


# ==================== LOOKUPS ====================

def to_role(role) -> UserRole:
    """Accepte un UserRole ou sa valeur brute ('team-leader'...)"""
    if isinstance(role, UserRole):
        return role
    return UserRole(role)


def get_creatable_roles(role) -> List[UserRole]:
    return list(CREATABLE_ROLES[to_role(role)])


def get_reporting_role(role) -> Optional[UserRole]:
    return REPORTS_TO_ROLE[to_role(role)]


def get_role_rank(role) -> int:
    return ROLE_RANK[to_role(role)]


def get_role_display_name(role) -> str:
    try:
        return ROLE_DISPLAY_NAMES[to_role(role)]
    except ValueError:
        return str(role)


def is_top_role(role) -> bool:
    return to_role(role) == TOP_ROLE


def is_leaf_role(role) -> bool:
    """Bottom of the hierarchy: cannot create anyone."""
    return not CREATABLE_ROLES[to_role(role)]


def can_create_role(actor_role, target_role) -> bool:
    return to_role(target_role) in CREATABLE_ROLES[to_role(actor_role)]
