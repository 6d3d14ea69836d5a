"""
Organization-related Pydantic schemas shared between server and clients.

Covers: onboarding (org creation), org update, org switching, invite-link
management and membership listings.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import EffectiveRole, OrgRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, description="Condominium name")
    city: str = Field(..., min_length=1, max_length=120)
    total_fractions: Optional[int] = Field(default=None, ge=1, le=5000)
    notes: Optional[str] = Field(default=None, max_length=2000)


class OrgUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    city: Optional[str] = Field(None, min_length=1, max_length=120)
    total_fractions: Optional[int] = Field(default=None, ge=1, le=5000)
    notes: Optional[str] = Field(default=None, max_length=2000)
    language: Optional[str] = Field(default=None, pattern=r"^[a-z]{2}(-[A-Z]{2})?$")
    timezone: Optional[str] = Field(default=None, min_length=1, max_length=64)

    @field_validator("name", "city", "language", "timezone")
    @classmethod
    def not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("may be omitted but not cleared")
        return v


class SwitchOrgRequest(BaseModel):
    """Change the session's active organization."""

    model_config = ConfigDict(populate_by_name=True)

    organization_id: uuid.UUID = Field(..., alias="organizationId")


class InviteLinkAction(BaseModel):
    """enable | disable | regenerate"""

    action: str = Field(..., pattern=r"^(enable|disable|regenerate)$")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    city: Optional[str] = None
    total_fractions: Optional[int] = None
    notes: Optional[str] = None
    language: str
    timezone: str
    invite_enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CurrentOrgResponse(BaseModel):
    org: OrgResponse
    org_role: OrgRole
    effective_role: EffectiveRole


class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    role: OrgRole  # the requesting user's role in this org
    active: bool = False


class OrgListResponse(BaseModel):
    data: list[OrgListItem]


class SwitchOrgResponse(BaseModel):
    active_organization_id: uuid.UUID
    redirect: str = "/dashboard"


class InviteLinkResponse(BaseModel):
    invite_enabled: bool
    invite_code: Optional[str] = None
    invite_url: Optional[str] = None


class JoinPreviewResponse(BaseModel):
    org_id: uuid.UUID
    name: str
    city: Optional[str] = None
    authenticated: bool
    already_member: bool
