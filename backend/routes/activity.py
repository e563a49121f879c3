"""
LeadDesk CRM - Routes Activity (timeline des leads visibles)
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from config import db, local_day
from routes.auth import get_current_user
from services.scope import build_lead_scope_query

router = APIRouter(prefix="/activity", tags=["Activity"])


@router.get("")
async def list_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    action: Optional[str] = None,
    lead_id: Optional[str] = None,
    date_from: Optional[str] = None,  # YYYY-MM-DD
    date_to: Optional[str] = None,
    user: dict = Depends(get_current_user)
):
    """Événements des leads visibles, du plus récent au plus ancien"""
    empty = {"activities": [], "pagination": {"page": page, "limit": limit, "total": 0, "pages": 0}}

    query = await build_lead_scope_query(user)
    if query is None:
        return empty
    if lead_id:
        query["id"] = lead_id
    query["activity_logs.0"] = {"$exists": True}

    leads = await db.leads.find(
        query, {"_id": 0, "id": 1, "name": 1, "activity_logs": 1}
    ).to_list(None)

    activities = []
    for lead in leads:
        for event in lead.get("activity_logs", []):
            activities.append({**event, "lead_id": lead["id"], "lead_name": lead.get("name", "")})

    if action:
        activities = [a for a in activities if action in a.get("action", "")]

    if date_from or date_to:
        def in_range(a):
            day = local_day(a.get("created_at"))
            if date_from and day < date_from[:10]:
                return False
            if date_to and day > date_to[:10]:
                return False
            return True
        activities = [a for a in activities if in_range(a)]

    activities.sort(key=lambda a: a.get("created_at", ""), reverse=True)

    total = len(activities)
    skip = (page - 1) * limit
    return {
        "activities": activities[skip:skip + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        }
    }
