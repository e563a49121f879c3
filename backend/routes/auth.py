"""
LeadDesk CRM - Routes Auth
Login / Logout / Session. The session token is resolved into the current
account here, before any handler runs.
"""

import logging
from fastapi import APIRouter, HTTPException, Depends, Request, Cookie, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from datetime import datetime, timezone, timedelta
from typing import Optional

from models.auth import UserLogin, public_user
from models.role import get_creatable_roles, get_role_display_name
from config import db, generate_token, now_iso, verify_password, SESSION_TTL_DAYS
from services.activity_logger import log_activity, get_activity_logs as get_logs
from services.permissions import require_admin

logger = logging.getLogger("auth")

router = APIRouter(prefix="/auth", tags=["Auth"])
security = HTTPBearer(auto_error=False)


# ==================== HELPERS ====================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    token: Optional[str] = Cookie(None),
):
    """Récupère l'utilisateur connecté depuis le token (Bearer ou cookie)."""
    raw_token = credentials.credentials if credentials else token
    if not raw_token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    session = await db.sessions.find_one({
        "token": raw_token,
        "expires_at": {"$gt": now_iso()}
    })

    if not session:
        raise HTTPException(status_code=401, detail="Session expired")

    user = await db.users.find_one(
        {"id": session["user_id"], "is_deleted": False},
        {"_id": 0, "password": 0}
    )

    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account is inactive")

    return user


def _session_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials:
        return credentials.credentials
    return request.cookies.get("token")


# ==================== LOGIN / LOGOUT ====================

@router.post("/login")
async def login(data: UserLogin, request: Request):
    """Connexion utilisateur."""
    user = await db.users.find_one(
        {"email": data.email, "is_deleted": False},
        {"_id": 0}
    )

    if not user or not verify_password(data.password, user.get("password")):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account is inactive. Please contact admin.")

    token = generate_token()
    expires_at = (datetime.now(timezone.utc) + timedelta(days=SESSION_TTL_DAYS)).isoformat()

    await db.sessions.insert_one({
        "token": token,
        "user_id": user["id"],
        "created_at": now_iso(),
        "expires_at": expires_at
    })

    await log_activity(
        actor=user,
        action="login",
        ip_address=request.client.host if request.client else None
    )
    logger.info(f"[LOGIN] user={user['email']} role={user['role']}")

    return {
        "success": True,
        "token": token,
        "user": public_user(user),
    }


@router.post("/logout")
async def logout(
    request: Request,
    user: dict = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security)
):
    token = _session_token(request, credentials)
    if token:
        await db.sessions.delete_one({"token": token})
    await log_activity(actor=user, action="logout")
    return {"success": True}


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    """Retourne le compte courant + ce qu'il peut créer."""
    return {
        **public_user(user),
        "role_display_name": get_role_display_name(user["role"]),
        "creatable_roles": [r.value for r in get_creatable_roles(user["role"])],
    }


# ==================== ACTIVITY LOG ====================

@router.get("/activity-logs")
async def get_activity_logs(
    user_id: Optional[str] = None,
    target_id: Optional[str] = None,
    action: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    user: dict = Depends(require_admin())
):
    """Journal d'audit des comptes (Admin uniquement)"""
    return await get_logs(user_id, target_id, action, page, limit)
