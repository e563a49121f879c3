"""
Journal d'audit de l'administration des comptes

Lead events are NOT written here: they live inside each lead
(activity_logs[], see services.lead_events). This collection only
records who logged in and who created / edited / deleted which account.
"""

import logging
from typing import Optional

from config import db, now_iso, new_id

logger = logging.getLogger("audit")

ACCOUNT_ACTIONS = ("login", "logout", "create_user", "update_user", "delete_user")


async def log_activity(
    actor: dict,
    action: str,
    target: Optional[dict] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None
) -> dict:
    """
    Enregistre une action sur un compte.

    Args:
        actor: compte qui agit
        action: one of ACCOUNT_ACTIONS
        target: compte concerné (défaut: actor, pour login / logout)
    """
    if action not in ACCOUNT_ACTIONS:
        raise ValueError(f"Unknown account action: {action}")

    target = target or actor
    entry = {
        "id": new_id(),
        "user_id": actor.get("id"),
        "user_email": actor.get("email"),
        "user_name": actor.get("name", ""),
        "user_role": actor.get("role"),
        "action": action,
        "entity_type": "user",
        "entity_id": target.get("id"),
        "entity_name": target.get("email"),
        "details": details or {},
        "ip_address": ip_address,
        "created_at": now_iso()
    }

    await db.activity_logs.insert_one(entry)
    entry.pop("_id", None)
    logger.info(f"[AUDIT] {action} by={entry['user_id']} target={entry['entity_id']}")
    return entry


async def get_activity_logs(
    user_id: Optional[str] = None,
    target_id: Optional[str] = None,
    action: Optional[str] = None,
    page: int = 1,
    limit: int = 50
) -> dict:
    """Journal filtré (acteur, compte cible, action), du plus récent au plus ancien."""
    query = {}
    if user_id:
        query["user_id"] = user_id
    if target_id:
        query["entity_id"] = target_id
    if action:
        query["action"] = action

    skip = (page - 1) * limit
    logs = await db.activity_logs.find(query, {"_id": 0}) \
        .sort("created_at", -1) \
        .skip(skip) \
        .limit(limit) \
        .to_list(limit)
    total = await db.activity_logs.count_documents(query)

    return {
        "logs": logs,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        }
    }
