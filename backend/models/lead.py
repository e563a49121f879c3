"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk CRM - Modèle Lead                                                  ║
║                                                                              ║
║  RÈGLES FONDAMENTALES:                                                       ║
║  1. Un lead a TOUJOURS exactement un assigned_user (propriétaire)            ║
║  2. La visibilité dépend de assigned_user, JAMAIS de created_by              ║
║  3. Jamais de suppression physique: is_deleted = True                        ║
║  4. follow_ups / comments / activity_logs sont en ajout seul ($push)         ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional
from pydantic import BaseModel, field_validator
from enum import Enum

from .auth import EMAIL_RE


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    FOLLOW_UP = "follow-up"
    CONVERTED = "converted"
    LOST = "lost"


class LeadSource(str, Enum):
    MANUAL = "manual"
    ADMIN_ASSIGNED = "admin-assigned"


class RecurringInterval(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


VALID_LEAD_STATUSES = [s.value for s in LeadStatus]


def _optional_email(v):
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    if not EMAIL_RE.match(v):
        raise ValueError("Invalid email address")
    return v.lower()


def _required(v, label):
    v = (v or "").strip()
    if not v:
        raise ValueError(f"{label} is required")
    return v


class LeadCreate(BaseModel):
    name: str
    email: Optional[str] = None
    phone: str
    address: str
    source: Optional[LeadSource] = None
    status: Optional[LeadStatus] = None
    assigned_user: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required(v, "Name")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _required(v, "Phone")

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        return _required(v, "Address")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _optional_email(v)

    @field_validator("assigned_user")
    @classmethod
    def empty_assigned_user(cls, v):
        return (v or "").strip() or None


class LeadUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    status: Optional[LeadStatus] = None
    assigned_user: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required(v, "Name") if v is not None else v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _required(v, "Phone") if v is not None else v

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        return _required(v, "Address") if v is not None else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _optional_email(v)

    @field_validator("assigned_user")
    @classmethod
    def validate_assigned_user(cls, v):
        return _required(v, "Assigned user") if v is not None else v


class CommentCreate(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def validate_text(cls, v):
        return _required(v, "Comment text")


class FollowUpCreate(BaseModel):
    """date: YYYY-MM-DD, time: HH:MM (heure locale métier)"""
    date: str
    time: str
    comment: str
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None
    recurring_end_date: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        from datetime import date
        v = _required(v, "Date")
        try:
            date.fromisoformat(v[:10])
        except ValueError:
            raise ValueError(f"Invalid date: {v}")
        return v[:10]

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return _required(v, "Time")

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v):
        return _required(v, "Comment")
