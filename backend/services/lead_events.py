"""
LeadDesk CRM - Lead Events

The only place that builds writes to a lead's child collections
(activity_logs, comments, follow_ups). Entries are appended with $push,
never edited or removed.
"""

from typing import Iterable, Optional

from config import now_iso, new_id
from models.lead import FollowUpCreate


def activity_entry(action: str, description: str, user: dict, metadata: Optional[dict] = None) -> dict:
    """
    Args:
        action: created | status_changed | reassigned | comment_added | followup_added | updated | deleted
        description: human readable sentence shown in the timeline
        metadata: field / old_value / new_value ...
    """
    return {
        "id": new_id(),
        "action": action,
        "description": description,
        "performed_by": user["id"],
        "performed_by_name": user.get("name", ""),
        "metadata": metadata or {},
        "created_at": now_iso(),
    }


def comment_entry(text: str, user: dict) -> dict:
    return {
        "id": new_id(),
        "text": text,
        "author": user["id"],
        "author_name": user.get("name", ""),
        "author_role": user.get("role", ""),
        "created_at": now_iso(),
    }


def followup_entry(data: FollowUpCreate, user: dict) -> dict:
    return {
        "id": new_id(),
        "date": data.date,
        "time": data.time,
        "comment": data.comment,
        "is_recurring": data.is_recurring,
        "recurring_interval": data.recurring_interval.value if data.recurring_interval else None,
        "recurring_end_date": data.recurring_end_date,
        "reminder_sent": False,
        "created_by": user["id"],
        "created_at": now_iso(),
    }


def build_lead_update(
    user: dict,
    set_fields: Optional[dict] = None,
    activity: Iterable[dict] = (),
    comments: Iterable[dict] = (),
    follow_ups: Iterable[dict] = (),
) -> dict:
    """Single update document: field changes + appended events."""
    update = {"$set": {**(set_fields or {}), "updated_by": user["id"], "updated_at": now_iso()}}

    push = {}
    for field, entries in (
        ("activity_logs", list(activity)),
        ("comments", list(comments)),
        ("follow_ups", list(follow_ups)),
    ):
        if entries:
            push[field] = {"$each": entries}
    if push:
        update["$push"] = push

    return update
