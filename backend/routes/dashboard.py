"""
LeadDesk CRM - Routes Dashboard & Team Reports
Counts over the actor's visible leads. No rule of their own: the lead
filter always comes from services.scope.
"""

from fastapi import APIRouter, Depends

from config import db, local_now
from models.lead import VALID_LEAD_STATUSES
from models.role import UserRole
from routes.auth import get_current_user
from services.hierarchy import get_assignable_user_ids
from services.permissions import require_roles, user_is_admin
from services.scope import build_lead_scope_query

router = APIRouter(tags=["Dashboard"])


async def _count_by(query: dict, field: str) -> dict:
    rows = await db.leads.aggregate([
        {"$match": query},
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
    ]).to_list(None)
    return {r["_id"]: r["count"] for r in rows}


async def _user_names(ids) -> dict:
    users = await db.users.find(
        {"id": {"$in": list(ids)}}, {"_id": 0, "id": 1, "name": 1, "email": 1, "role": 1}
    ).to_list(None)
    return {u["id"]: u for u in users}


@router.get("/dashboard")
async def get_dashboard(user: dict = Depends(get_current_user)):
    query = await build_lead_scope_query(user) or {"id": None}

    total = await db.leads.count_documents(query)
    by_status = {s: 0 for s in VALID_LEAD_STATUSES}
    by_status.update(await _count_by(query, "status"))

    today_key = local_now().date().isoformat()
    follow_ups_today = await db.leads.count_documents({**query, "follow_ups.date": today_key})
    overdue = await db.leads.count_documents({**query, "follow_ups.date": {"$lt": today_key}})

    result = {
        "total_leads": total,
        "leads_by_status": by_status,
        "follow_ups_today": follow_ups_today,
        "leads_with_overdue_follow_ups": overdue,
        "my_leads_count": await db.leads.count_documents({"assigned_user": user["id"], "is_deleted": False}),
    }

    if user_is_admin(user):
        per_user = await _count_by(query, "assigned_user")
        users = await _user_names(per_user.keys())
        result["leads_per_user"] = sorted(
            [
                {
                    "user_id": uid,
                    "user_name": users.get(uid, {}).get("name", "Unknown"),
                    "user_email": users.get(uid, {}).get("email", ""),
                    "lead_count": count,
                }
                for uid, count in per_user.items()
            ],
            key=lambda r: r["lead_count"],
            reverse=True,
        )
        result["active_users"] = await db.users.count_documents({"is_deleted": False, "is_active": True})
        result["inactive_users"] = await db.users.count_documents({"is_deleted": False, "is_active": False})
        result["recent_leads"] = await db.leads.find(
            query, {"_id": 0, "id": 1, "name": 1, "status": 1, "assigned_user": 1, "updated_at": 1}
        ).sort("updated_at", -1).limit(10).to_list(10)

    return result


@router.get("/reports/team")
async def get_team_report(user: dict = Depends(require_roles(UserRole.MANAGER, UserRole.TEAM_LEADER))):
    """Leads par membre de l'équipe et par statut"""
    member_ids = await get_assignable_user_ids(user["id"])

    rows = await db.leads.aggregate([
        {"$match": {"assigned_user": {"$in": list(member_ids)}, "is_deleted": False}},
        {"$group": {
            "_id": {"assigned_user": "$assigned_user", "status": "$status"},
            "count": {"$sum": 1},
        }},
    ]).to_list(None)

    users = await _user_names(member_ids)
    members = {
        uid: {
            "user_id": uid,
            "user_name": users.get(uid, {}).get("name", "Unknown"),
            "user_email": users.get(uid, {}).get("email", ""),
            "user_role": users.get(uid, {}).get("role", ""),
            "total_leads": 0,
            "statuses": {s: 0 for s in VALID_LEAD_STATUSES},
        }
        for uid in member_ids
    }
    for row in rows:
        member = members[row["_id"]["assigned_user"]]
        member["statuses"][row["_id"]["status"]] = row["count"]
        member["total_leads"] += row["count"]

    team = sorted(members.values(), key=lambda m: (-m["total_leads"], m["user_name"]))
    return {
        "team_members": team,
        "total_leads": sum(m["total_leads"] for m in team),
    }
