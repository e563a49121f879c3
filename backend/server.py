"""
LeadDesk CRM - API Backend
Gestion de leads par hiérarchie de rôles (Admin → Manager → Team Leader → User)

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config import client, db, CORS_ORIGINS

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("leaddesk")

# Créer l'app
app = FastAPI(
    title="LeadDesk CRM",
    description="CRM de gestion de leads par équipes",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== IMPORT DES ROUTES ====================

from routes import auth, users, leads, activity, reminders, calendar, analytics, dashboard

# Routes avec préfixe /api
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(leads.router, prefix="/api")
app.include_router(activity.router, prefix="/api")
app.include_router(reminders.router, prefix="/api")
app.include_router(calendar.router, prefix="/api")
app.include_router(analytics.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")

# ==================== ROUTE RACINE ====================

@app.get("/")
async def root():
    return {
        "name": "LeadDesk CRM API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


# ==================== STARTUP ====================

@app.on_event("startup")
async def startup():
    logger.info("LeadDesk CRM v1.0 démarré")

    await db.users.create_index("id", unique=True)
    await db.users.create_index("email")
    await db.users.create_index([("reporting_to", 1), ("is_deleted", 1)])
    await db.users.create_index([("is_deleted", 1), ("is_active", 1)])
    await db.sessions.create_index("token")
    await db.sessions.create_index("expires_at")
    await db.leads.create_index("id", unique=True)
    await db.leads.create_index([("assigned_user", 1), ("is_deleted", 1)])
    await db.leads.create_index([("status", 1), ("is_deleted", 1)])
    await db.leads.create_index("created_at")
    await db.activity_logs.create_index("created_at")

    logger.info("Index MongoDB créés")


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
