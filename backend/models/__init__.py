"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk CRM - Models Package                                               ║
║                                                                              ║
║  Exports tous les modèles pour import facile                                 ║
║  from models import UserRole, UserCreate, LeadCreate, etc.                   ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Rôles & hiérarchie
from .role import (
    UserRole,
    TOP_ROLE,
    VALID_ROLES,
    get_creatable_roles,
    get_reporting_role,
    get_role_rank,
    get_role_display_name,
    is_top_role,
    is_leaf_role,
    can_create_role,
)

# Auth / comptes
from .auth import (
    UserLogin,
    UserCreate,
    UserUpdate,
    public_user,
)

# Lead
from .lead import (
    LeadStatus,
    LeadSource,
    RecurringInterval,
    VALID_LEAD_STATUSES,
    LeadCreate,
    LeadUpdate,
    CommentCreate,
    FollowUpCreate,
)

__all__ = [
    # Rôles
    "UserRole",
    "TOP_ROLE",
    "VALID_ROLES",
    "get_creatable_roles",
    "get_reporting_role",
    "get_role_rank",
    "get_role_display_name",
    "is_top_role",
    "is_leaf_role",
    "can_create_role",
    # Auth
    "UserLogin",
    "UserCreate",
    "UserUpdate",
    "public_user",
    # Lead
    "LeadStatus",
    "LeadSource",
    "RecurringInterval",
    "VALID_LEAD_STATUSES",
    "LeadCreate",
    "LeadUpdate",
    "CommentCreate",
    "FollowUpCreate",
]
