"""
LeadDesk CRM - Routes Analytics
Trends and conversion figures over the visible leads.

- lead_trends / status_changes_by_date: last `period` days (APP_TIMEZONE)
- status_distribution / conversion_rate / user_performance: all visible leads
- monthly_data: current month and the 6 before it
"""

from datetime import timedelta
from fastapi import APIRouter, Depends, Query

from config import db, local_now, local_day
from models.lead import LeadStatus
from routes.auth import get_current_user
from services.scope import build_lead_scope_query

router = APIRouter(prefix="/analytics", tags=["Analytics"])

TOP_PERFORMERS = 10
MONTHS_BACK = 6


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total else 0


def _months_back(today, months: int) -> str:
    year, month = today.year, today.month - months
    while month <= 0:
        month += 12
        year -= 1
    return f"{year:04d}-{month:02d}"


@router.get("")
async def get_analytics(
    period: int = Query(30, ge=1, le=365),  # jours
    user: dict = Depends(get_current_user)
):
    today = local_now().date()
    period_start = (today - timedelta(days=period)).isoformat()
    today_key = today.isoformat()
    first_month = _months_back(today, MONTHS_BACK)

    result = {
        "period": period,
        "lead_trends": [],
        "status_distribution": [],
        "conversion_rate": 0,
        "total_leads": 0,
        "converted_leads": 0,
        "user_performance": [],
        "monthly_data": [],
        "status_changes_by_date": {},
    }

    query = await build_lead_scope_query(user)
    if query is None:
        return result

    leads = await db.leads.find(
        query, {"_id": 0, "status": 1, "assigned_user": 1, "created_at": 1, "updated_at": 1}
    ).to_list(None)

    converted = LeadStatus.CONVERTED.value
    lost = LeadStatus.LOST.value

    trends, statuses, changes, per_user, monthly = {}, {}, {}, {}, {}
    for lead in leads:
        status = lead.get("status")
        statuses[status] = statuses.get(status, 0) + 1

        created = local_day(lead.get("created_at"))
        if period_start <= created <= today_key:
            trends[created] = trends.get(created, 0) + 1

        updated = local_day(lead.get("updated_at"))
        if period_start <= updated <= today_key:
            day = changes.setdefault(updated, {})
            day[status] = day.get(status, 0) + 1

        stats = per_user.setdefault(lead["assigned_user"], {"total_leads": 0, "converted": 0, "lost": 0})
        stats["total_leads"] += 1

        month = created[:7]
        if month and month >= first_month:
            bucket = monthly.setdefault(month, {"month": month, "total": 0, "converted": 0, "lost": 0})
            bucket["total"] += 1

        if status == converted:
            stats["converted"] += 1
            if month in monthly:
                monthly[month]["converted"] += 1
        elif status == lost:
            stats["lost"] += 1
            if month in monthly:
                monthly[month]["lost"] += 1

    owners = await db.users.find(
        {"id": {"$in": list(per_user)}}, {"_id": 0, "id": 1, "name": 1, "email": 1}
    ).to_list(None)

    performance = [
        {
            "user_id": o["id"],
            "user_name": o.get("name", ""),
            "user_email": o.get("email", ""),
            **per_user[o["id"]],
            "conversion_rate": _rate(per_user[o["id"]]["converted"], per_user[o["id"]]["total_leads"]),
        }
        for o in owners
    ]
    performance.sort(key=lambda p: (-p["conversion_rate"], -p["total_leads"], p["user_name"]))

    total = len(leads)
    converted_count = statuses.get(converted, 0)

    result.update({
        "lead_trends": [{"date": d, "leads": n} for d, n in sorted(trends.items())],
        "status_distribution": [{"status": s, "count": n} for s, n in sorted(statuses.items())],
        "conversion_rate": _rate(converted_count, total),
        "total_leads": total,
        "converted_leads": converted_count,
        "user_performance": performance[:TOP_PERFORMERS],
        "monthly_data": [monthly[m] for m in sorted(monthly)],
        "status_changes_by_date": dict(sorted(changes.items())),
    })
    return result
