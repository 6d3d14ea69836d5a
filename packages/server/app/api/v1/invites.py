"""
Invite endpoints.

GET    /api/v1/invites                   — List invites (admin: all; owner-admin: own)
POST   /api/v1/invites                   — Create an org invite (admin)
POST   /api/v1/invites/{invite_id}/revoke — Revoke a pending invite (admin)
POST   /api/v1/invites/{token}/accept    — Accept an invite (signed-in, no active org needed)
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    get_app_settings,
    get_session_store,
    get_tenant_scope,
    require_org_admin,
    require_roles,
    require_user,
)
from app.core.config import Settings
from app.core.context import Identity, OrgContext
from app.core.database import get_session
from app.core.sessions import SessionStore
from app.core.tenancy import TenantScope
from app.models.invite import Invite
from app.services import invites as invite_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.common import EffectiveRole
from zelus_shared.schemas.documents import (
    InviteAcceptResponse,
    InviteCreated,
    InviteRead,
    OrgInviteCreate,
)

router = APIRouter()
router_accept = APIRouter()


def to_invite_created(invite: Invite, settings: Settings) -> InviteCreated:
    return InviteCreated(
        **InviteRead.model_validate(invite).model_dump(),
        invite_url=invite_service.invite_url(settings.app_url, invite.token),
    )


@router.get("", response_model=List[InviteRead])
async def list_invites(
    ctx: OrgContext = Depends(
        require_roles(EffectiveRole.ORG_ADMIN, EffectiveRole.FRACTION_OWNER_ADMIN)
    ),
    scope: TenantScope = Depends(get_tenant_scope),
):
    """Admins see every invite; fraction owner-admins see the ones they sent."""
    invited_by = None if ctx.is_org_admin else ctx.user_id
    return await invite_service.list_invites(scope, invited_by=invited_by)


@router.post("", response_model=InviteCreated, status_code=201)
async def create_invite(
    body: OrgInviteCreate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    settings: Settings = Depends(get_app_settings),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Invite someone to the org by email (Admin only)."""
    invite = await invite_service.create_org_invite(
        scope,
        body.email,
        body.role,
        ctx.user_id,
        audit,
        app_url=settings.app_url,
        expire_days=settings.invite_expire_days,
    )
    return to_invite_created(invite, settings)


@router.post("/{invite_id}/revoke", response_model=InviteRead)
async def revoke_invite(
    invite_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await invite_service.revoke_invite(scope, invite_id, ctx.user_id, audit)


# ---------------------------------------------------------------------------
# Acceptance (the org comes from the invite, not the session)
# ---------------------------------------------------------------------------

@router_accept.post("/invites/{token}/accept", response_model=InviteAcceptResponse, tags=["Invites"])
async def accept_invite(
    token: str,
    identity: Identity = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Accept an invite and make its org the session's active org."""
    invite = await invite_service.accept_invite(
        token, identity.user_id, identity.email, session, audit
    )
    await store.activate_after_commit(session, identity.session_id, invite.org_id)
    return InviteAcceptResponse(
        org_id=invite.org_id,
        type=invite.type,
        redirect=settings.dashboard_path,
    )
