"""
Configuration et utilitaires partagés
"""

import os
import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path
import pytz

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger("config")

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'leaddesk_crm')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

logger.info(f"[CONFIG] Using database: {DB_NAME}")

# Sessions
SESSION_TTL_DAYS = int(os.environ.get('SESSION_TTL_DAYS', '7'))

# Business timezone (reminder buckets)
APP_TIMEZONE = pytz.timezone(os.environ.get('APP_TIMEZONE', 'UTC'))

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


# ==================== HELPERS ====================

def hash_password(password: str) -> str:
    """Hash un mot de passe avec SHA256"""
    return hashlib.sha256(password.encode()).hexdigest()

def verify_password(password: str, hashed: str) -> bool:
    """Compare en temps constant"""
    return hmac.compare_digest(hash_password(password), hashed or "")

def generate_token() -> str:
    """Génère un token de session sécurisé"""
    return secrets.token_urlsafe(32)

def new_id() -> str:
    return str(uuid.uuid4())

def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return datetime.now(timezone.utc).isoformat()

def local_now() -> datetime:
    """Date/heure courante dans le fuseau métier"""
    return datetime.now(APP_TIMEZONE)

def local_day(iso_ts) -> str:
    """Jour métier (YYYY-MM-DD) d'un horodatage ISO, "" si illisible"""
    try:
        return datetime.fromisoformat(iso_ts).astimezone(APP_TIMEZONE).date().isoformat()
    except (TypeError, ValueError):
        return ""
