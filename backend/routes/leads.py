"""
Routes pour les Leads

Every read goes through the visibility filter of services.scope, every
write carries it inside the update filter: a lead outside the actor's
scope is "Lead not found", whatever the operation.
"""

import re
import logging
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional

from config import db, now_iso, new_id
from models.lead import LeadCreate, LeadUpdate, LeadSource, LeadStatus, CommentCreate, FollowUpCreate
from routes.auth import get_current_user
from services.lead_events import activity_entry, build_lead_update, comment_entry, followup_entry
from services.permissions import user_is_admin
from services.scope import (
    build_lead_scope_query,
    ensure_can_assign,
    get_scoped_lead,
    split_ids,
    update_scoped_lead,
)

logger = logging.getLogger("leads")

router = APIRouter(prefix="/leads", tags=["Leads"])

MAX_PAGE_SIZE = 100
NULLABLE_LEAD_FIELDS = ("email",)


# ==================== HELPERS ====================

async def _attach_user_names(leads: list) -> list:
    """Ajoute assigned_user_name / created_by_name (lecture seule)"""
    ids = {l.get("assigned_user") for l in leads} | {l.get("created_by") for l in leads}
    ids.discard(None)
    users = await db.users.find({"id": {"$in": list(ids)}}, {"_id": 0, "id": 1, "name": 1}).to_list(None)
    names = {u["id"]: u.get("name", "") for u in users}
    for lead in leads:
        lead["assigned_user_name"] = names.get(lead.get("assigned_user"), "Unknown")
        lead["created_by_name"] = names.get(lead.get("created_by"), "Unknown")
    return leads


def _empty_page(page: int, limit: int) -> dict:
    return {"leads": [], "pagination": {"page": page, "limit": limit, "total": 0, "pages": 0}}


# ==================== LIST / CREATE ====================

@router.get("")
async def list_leads(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    status: Optional[LeadStatus] = None,
    assigned_user: Optional[str] = None,
    assigned_users: Optional[str] = None,  # Comma-separated: "id1,id2"
    search: Optional[str] = None,
    user: dict = Depends(get_current_user)
):
    """Liste paginée des leads visibles par le compte courant"""
    limit = min(limit, MAX_PAGE_SIZE)

    query = await build_lead_scope_query(user, assigned_user, split_ids(assigned_users))
    if query is None:
        return _empty_page(page, limit)

    if status:
        query["status"] = status.value

    if search and search.strip():
        pattern = re.escape(search.strip())
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
            {"phone": {"$regex": pattern, "$options": "i"}},
        ]

    skip = (page - 1) * limit
    leads = await db.leads.find(query, {"_id": 0}).sort("created_at", -1).skip(skip).limit(limit).to_list(limit)
    total = await db.leads.count_documents(query)

    return {
        "leads": await _attach_user_names(leads),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        }
    }


@router.post("", status_code=201)
async def create_lead(data: LeadCreate, user: dict = Depends(get_current_user)):
    """Créer un lead. Sans assigned_user, le lead revient à son créateur (hors Admin)."""
    is_admin = user_is_admin(user)

    if is_admin and not data.assigned_user:
        raise HTTPException(status_code=400, detail="Assigned user is required for admin users")

    target_id = data.assigned_user or user["id"]
    await ensure_can_assign(user, target_id)

    if is_admin:
        source = data.source or LeadSource.ADMIN_ASSIGNED
    else:
        source = LeadSource.MANUAL

    lead_doc = {
        "id": new_id(),
        "name": data.name,
        "email": data.email,
        "phone": data.phone,
        "address": data.address,
        "source": source.value,
        "status": (data.status or LeadStatus.NEW).value,
        "assigned_user": target_id,
        "created_by": user["id"],
        "updated_by": None,
        "follow_ups": [],
        "comments": [],
        "activity_logs": [
            activity_entry("created", f"Lead created by {user.get('name', '')}", user)
        ],
        "is_deleted": False,
        "created_at": now_iso(),
        "updated_at": now_iso(),
    }

    await db.leads.insert_one(lead_doc)
    lead_doc.pop("_id", None)
    logger.info(f"[LEAD_CREATED] lead={lead_doc['id']} by={user['id']} assigned_user={target_id}")

    return {"success": True, "lead": (await _attach_user_names([lead_doc]))[0]}


# ==================== SINGLE LEAD ====================

@router.get("/{lead_id}")
async def get_lead(lead_id: str, user: dict = Depends(get_current_user)):
    lead = await get_scoped_lead(user, lead_id)
    return {"lead": (await _attach_user_names([lead]))[0]}


@router.patch("/{lead_id}")
async def update_lead(lead_id: str, data: LeadUpdate, user: dict = Depends(get_current_user)):
    """Modifier un lead: champs, statut, réassignation"""
    current = await get_scoped_lead(user, lead_id)

    # email may be cleared (null or ""), every other field ignores null
    changes = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_LEAD_FIELDS
    }
    if "status" in changes:
        changes["status"] = changes["status"].value

    changes = {k: v for k, v in changes.items() if current.get(k) != v}
    if not changes:
        return {"success": True, "lead": (await _attach_user_names([current]))[0]}

    activity = []
    actor = user.get("name", "")

    if "status" in changes:
        activity.append(activity_entry(
            "status_changed",
            f"Status changed from {current['status']} to {changes['status']} by {actor}",
            user,
            {"field": "status", "old_value": current["status"], "new_value": changes["status"]}
        ))

    if "assigned_user" in changes:
        new_owner = await ensure_can_assign(user, changes["assigned_user"])
        activity.append(activity_entry(
            "reassigned",
            f"Lead reassigned to {new_owner.get('name', 'unknown')} by {actor}",
            user,
            {"field": "assigned_user", "old_value": current["assigned_user"], "new_value": changes["assigned_user"]}
        ))

    edited = [k for k in changes if k not in ("status", "assigned_user")]
    if edited:
        activity.append(activity_entry(
            "updated", f"Lead details updated by {actor}", user, {"fields": edited}
        ))

    lead = await update_scoped_lead(user, lead_id, build_lead_update(user, changes, activity=activity))
    return {"success": True, "lead": (await _attach_user_names([lead]))[0]}


@router.delete("/{lead_id}")
async def delete_lead(lead_id: str, user: dict = Depends(get_current_user)):
    """Suppression logique (is_deleted = True)"""
    await update_scoped_lead(user, lead_id, build_lead_update(
        user,
        {"is_deleted": True, "deleted_at": now_iso()},
        activity=[activity_entry("deleted", f"Lead deleted by {user.get('name', '')}", user)]
    ))
    return {"success": True}


# ==================== CHILD EVENTS ====================

@router.post("/{lead_id}/comments", status_code=201)
async def add_comment(lead_id: str, data: CommentCreate, user: dict = Depends(get_current_user)):
    lead = await update_scoped_lead(user, lead_id, build_lead_update(
        user,
        comments=[comment_entry(data.text, user)],
        activity=[activity_entry("comment_added", f"Comment added by {user.get('name', '')}", user)]
    ))
    return {"success": True, "lead": (await _attach_user_names([lead]))[0]}


@router.post("/{lead_id}/followups", status_code=201)
async def add_followup(lead_id: str, data: FollowUpCreate, user: dict = Depends(get_current_user)):
    lead = await update_scoped_lead(user, lead_id, build_lead_update(
        user,
        follow_ups=[followup_entry(data, user)],
        activity=[activity_entry(
            "followup_added",
            f"Follow-up scheduled by {user.get('name', '')}",
            user,
            {"date": data.date, "time": data.time}
        )]
    ))
    return {"success": True, "lead": (await _attach_user_names([lead]))[0]}
