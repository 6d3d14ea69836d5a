"""Document metadata, invite and audit-log schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field, UUID4

from .common import DocumentStatus, InviteRole, InviteStatus, InviteType, Pagination


# ---------------------------------------------------------------------------
# Documents (metadata only; storage lives with the upload provider)
# ---------------------------------------------------------------------------

class DocumentCreate(BaseModel):
    file_name: str = Field(min_length=1, max_length=255)
    file_url: str = Field(min_length=1, max_length=2000)
    file_size: int = Field(ge=0)
    mime_type: str = Field(min_length=1, max_length=100)


class DocumentRead(BaseModel):
    id: UUID4
    file_name: str
    file_url: str
    file_size: int
    mime_type: str
    status: DocumentStatus
    uploaded_by: UUID4
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

class OrgInviteCreate(BaseModel):
    email: EmailStr
    role: InviteRole = InviteRole.FRACTION_MEMBER


class FractionInviteCreate(BaseModel):
    email: EmailStr
    role: InviteRole = InviteRole.FRACTION_MEMBER


class InviteRead(BaseModel):
    id: UUID4
    type: InviteType
    email: str
    role: InviteRole
    status: InviteStatus
    fraction_id: Optional[UUID4] = None
    invited_by: UUID4
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class InviteCreated(InviteRead):
    """Returned once on creation; carries the acceptance URL."""
    invite_url: str


class InviteAcceptResponse(BaseModel):
    org_id: UUID4
    type: InviteType
    redirect: str = "/dashboard"


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

class AuditLogRead(BaseModel):
    id: UUID4
    user_id: UUID4
    action: str
    entity_type: str
    entity_id: str
    details: Optional[dict[str, Any]] = None
    created_at: datetime


class AuditLogPage(BaseModel):
    data: List[AuditLogRead]
    pagination: Pagination
