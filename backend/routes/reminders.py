"""
LeadDesk CRM - Routes Reminders
Follow-ups of visible leads, bucketed by day in APP_TIMEZONE.
"""

from datetime import timedelta
from fastapi import APIRouter, Depends

from config import db, local_now
from routes.auth import get_current_user
from services.scope import build_lead_scope_query

router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.get("")
async def list_reminders(user: dict = Depends(get_current_user)):
    """today / tomorrow / overdue"""
    buckets = {"today": [], "tomorrow": [], "overdue": []}

    query = await build_lead_scope_query(user)
    if query is None:
        return {**buckets, "total": 0}
    query["follow_ups.0"] = {"$exists": True}

    leads = await db.leads.find(
        query, {"_id": 0, "id": 1, "name": 1, "assigned_user": 1, "follow_ups": 1}
    ).to_list(None)

    owner_ids = list({l["assigned_user"] for l in leads})
    owners = await db.users.find({"id": {"$in": owner_ids}}, {"_id": 0, "id": 1, "name": 1}).to_list(None)
    names = {o["id"]: o.get("name", "") for o in owners}

    today = local_now().date()
    today_key = today.isoformat()
    tomorrow_key = (today + timedelta(days=1)).isoformat()

    for lead in leads:
        for follow_up in lead.get("follow_ups", []):
            day = follow_up.get("date", "")
            if day == today_key:
                bucket = "today"
            elif day == tomorrow_key:
                bucket = "tomorrow"
            elif day and day < today_key:
                bucket = "overdue"
            else:
                continue
            buckets[bucket].append({
                "id": follow_up.get("id"),
                "lead_id": lead["id"],
                "lead_name": lead.get("name", ""),
                "date": day,
                "time": follow_up.get("time", ""),
                "comment": follow_up.get("comment", ""),
                "assigned_user": names.get(lead["assigned_user"], "Unknown"),
            })

    for items in buckets.values():
        items.sort(key=lambda r: (r["date"], r["time"]))

    return {**buckets, "total": sum(len(v) for v in buckets.values())}
