"""User, auth and membership schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, UUID4

from .common import OrgRole


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    user_id: str
    email: str
    active_organization_id: Optional[str] = None
    message: str


class MeResponse(BaseModel):
    id: UUID4
    name: str
    email: str
    email_verified: bool
    active_organization_id: Optional[UUID4] = None


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberUpdateRequest(BaseModel):
    """Change a member's org-level role. Ownership cannot be granted here."""
    role: OrgRole


class MemberResponse(BaseModel):
    user_id: UUID4
    name: str
    email: str
    role: OrgRole
    joined_at: datetime


class MemberListResponse(BaseModel):
    data: List[MemberResponse]
