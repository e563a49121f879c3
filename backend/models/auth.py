"""
LeadDesk CRM - Modeles Auth & Utilisateurs
Role-based hierarchy: every account except Admin reports to exactly one manager.
"""

import re
from pydantic import BaseModel, field_validator
from typing import Optional

from .role import UserRole


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def _clean_email(v: str) -> str:
    v = (v or "").strip().lower()
    if not EMAIL_RE.match(v):
        raise ValueError("Invalid email address")
    return v


class UserLogin(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _clean_email(v)


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    role: UserRole
    reporting_to: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _clean_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v

    @field_validator("reporting_to")
    @classmethod
    def empty_reporting_to(cls, v):
        return v or None


class UserUpdate(BaseModel):
    """reporting_to: absent = unchanged, explicit null = remove manager"""
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    reporting_to: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name is required")
        return v.strip() if v else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _clean_email(v) if v is not None else v


PUBLIC_USER_FIELDS = ("id", "name", "email", "role", "reporting_to", "is_active")


def public_user(user: dict) -> dict:
    """Sous-ensemble exposé d'un document users (jamais le mot de passe)"""
    return {k: user.get(k) for k in PUBLIC_USER_FIELDS}
