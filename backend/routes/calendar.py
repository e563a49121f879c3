"""
LeadDesk CRM - Routes Calendar
Follow-ups of visible leads laid out for a month view, plus the
upcoming week and everything overdue. Days are APP_TIMEZONE days.
"""

from datetime import date, timedelta
from fastapi import APIRouter, Depends, Query
from typing import Optional

from config import db, local_now
from routes.auth import get_current_user
from services.scope import build_lead_scope_query

router = APIRouter(prefix="/calendar", tags=["Calendar"])

UPCOMING_DAYS = 7


def _parse_day(value) -> Optional[date]:
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


@router.get("")
async def get_calendar(
    month: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),  # YYYY-MM
    user: dict = Depends(get_current_user)
):
    """events_by_date (mois demandé), upcoming (7 jours), overdue"""
    today = local_now().date()
    month = month or today.strftime("%Y-%m")
    empty = {"month": month, "events_by_date": {}, "upcoming_events": [], "overdue_events": [], "total_events": 0}

    query = await build_lead_scope_query(user)
    if query is None:
        return empty
    query["follow_ups.0"] = {"$exists": True}

    leads = await db.leads.find(
        query, {"_id": 0, "id": 1, "name": 1, "assigned_user": 1, "follow_ups": 1}
    ).to_list(None)

    owner_ids = list({l["assigned_user"] for l in leads})
    owners = await db.users.find({"id": {"$in": owner_ids}}, {"_id": 0, "id": 1, "name": 1}).to_list(None)
    names = {o["id"]: o.get("name", "") for o in owners}

    events_by_date = {}
    upcoming, overdue = [], []
    total = 0
    horizon = today + timedelta(days=UPCOMING_DAYS)

    for lead in leads:
        for follow_up in lead.get("follow_ups", []):
            day = _parse_day(follow_up.get("date"))
            if day is None:
                continue
            key = day.isoformat()
            base = {
                "id": follow_up.get("id") or f"{lead['id']}-{key}",
                "date": key,
                "time": follow_up.get("time") or "00:00",
                "comment": follow_up.get("comment", ""),
                "lead_id": lead["id"],
                "lead_name": lead.get("name", ""),
            }

            if key[:7] == month:
                events_by_date.setdefault(key, []).append({
                    **base,
                    "title": follow_up.get("comment") or "Follow-up",
                    "assigned_user": names.get(lead["assigned_user"], "Unknown"),
                    "is_overdue": day < today,
                    "is_today": day == today,
                })
                total += 1

            if today <= day <= horizon:
                upcoming.append({**base, "days_until": (day - today).days})
            elif day < today:
                overdue.append({**base, "days_overdue": (today - day).days})

    for events in events_by_date.values():
        events.sort(key=lambda e: e["time"])
    upcoming.sort(key=lambda e: (e["date"], e["time"]))
    overdue.sort(key=lambda e: (-e["days_overdue"], e["time"]))

    return {
        "month": month,
        "events_by_date": dict(sorted(events_by_date.items())),
        "upcoming_events": upcoming,
        "overdue_events": overdue,
        "total_events": total,
    }
