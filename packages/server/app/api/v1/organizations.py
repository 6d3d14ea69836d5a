"""
Organization API endpoints.

GET    /api/v1/orgs               — List orgs for the signed-in user
POST   /api/v1/orgs               — Onboarding: create an org and switch to it
POST   /api/v1/orgs/switch        — Change the session's active org
GET    /api/v1/join/{code}        — Preview an invite-code join
POST   /api/v1/join/{code}        — Join via invite code
GET    /api/v1/org                — Active org + caller's role
PATCH  /api/v1/org                — Update org profile (admin)
GET    /api/v1/org/invite-link    — Current invite-code state (admin)
POST   /api/v1/org/invite-link    — enable | disable | regenerate (admin)
GET    /api/v1/org/audit          — Paginated audit trail (admin)
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    get_app_settings,
    get_identity,
    get_session_store,
    get_tenant_scope,
    require_org_admin,
    require_org_member,
    require_user,
)
from app.core.config import Settings
from app.core.context import Identity, OrgContext
from app.core.database import get_session
from app.core.errors import NotFound
from app.core.sessions import SessionStore
from app.core.tenancy import TenantScope
from app.models.organization import Organization
from app.services import audit as audit_service
from app.services import organizations as org_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.common import Pagination
from zelus_shared.schemas.documents import AuditLogPage, AuditLogRead
from zelus_shared.schemas.organizations import (
    CurrentOrgResponse,
    InviteLinkAction,
    InviteLinkResponse,
    JoinPreviewResponse,
    OrgCreateRequest,
    OrgListItem,
    OrgListResponse,
    OrgResponse,
    OrgUpdateRequest,
    SwitchOrgRequest,
    SwitchOrgResponse,
)

log = structlog.get_logger()


def _invite_link(org: Organization, settings: Settings) -> InviteLinkResponse:
    url = None
    if org.invite_enabled and org.invite_code:
        url = f"{settings.app_url.rstrip('/')}/join/{org.invite_code}"
    return InviteLinkResponse(
        invite_enabled=org.invite_enabled,
        invite_code=org.invite_code if org.invite_enabled else None,
        invite_url=url,
    )


# ---------------------------------------------------------------------------
# Session-scoped routes (no active org required)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    identity: Identity = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the signed-in user belongs to, flagging the active one."""
    rows = await org_service.list_user_orgs(identity.user_id, session)
    return OrgListResponse(
        data=[
            OrgListItem(
                id=org.id,
                name=org.name,
                slug=org.slug,
                role=role,
                active=org.id == identity.active_org_id,
            )
            for org, role in rows
        ]
    )


@router_global.post("/orgs", response_model=OrgResponse, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    identity: Identity = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Create a condominium. The creator becomes its owner and it becomes the active org."""
    org = await org_service.create_org(body, identity.user_id, session, audit)
    await store.activate_after_commit(session, identity.session_id, org.id)
    return org


@router_global.post("/orgs/switch", response_model=SwitchOrgResponse, tags=["Organizations"])
async def switch_org(
    body: SwitchOrgRequest,
    identity: Identity = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
):
    """Point the session at another org the user belongs to."""
    if not await org_service.is_member(session, body.organization_id, identity.user_id):
        raise NotFound("Organization not found")
    await store.set_active_org(identity.session_id, body.organization_id)
    log.info("org.switched", org_id=str(body.organization_id))
    return SwitchOrgResponse(
        active_organization_id=body.organization_id,
        redirect=settings.dashboard_path,
    )


@router_global.get("/join/{code}", response_model=JoinPreviewResponse, tags=["Organizations"])
async def preview_join(
    code: str,
    identity: Optional[Identity] = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    """What joining with this code would do. Works signed out."""
    org = await org_service.get_org_by_invite_code(code, session)
    if org is None:
        raise NotFound("Invite link is invalid or disabled")
    already_member = identity is not None and await org_service.is_member(
        session, org.id, identity.user_id
    )
    return JoinPreviewResponse(
        org_id=org.id,
        name=org.name,
        city=org.city,
        authenticated=identity is not None,
        already_member=already_member,
    )


@router_global.post("/join/{code}", response_model=SwitchOrgResponse, tags=["Organizations"])
async def join_org(
    code: str,
    identity: Identity = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Join an org by its invite code; existing members are just switched to it."""
    org, _already_member = await org_service.join_by_code(code, identity.user_id, session, audit)
    await store.activate_after_commit(session, identity.session_id, org.id)
    return SwitchOrgResponse(active_organization_id=org.id, redirect=settings.dashboard_path)


# ---------------------------------------------------------------------------
# Org-scoped routes (active org from the session)
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=CurrentOrgResponse)
async def get_org(
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    """The active org with the caller's org and effective roles."""
    org = await org_service.get_current_org(scope)
    return CurrentOrgResponse(
        org=OrgResponse.model_validate(org),
        org_role=ctx.org_role,
        effective_role=ctx.effective_role,
    )


@router_scoped.patch("", response_model=OrgResponse)
async def update_org(
    body: OrgUpdateRequest,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Update org profile fields (Admin only)."""
    return await org_service.update_org(scope, body, ctx.user_id, audit)


@router_scoped.get("/invite-link", response_model=InviteLinkResponse)
async def get_invite_link(
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    settings: Settings = Depends(get_app_settings),
):
    org = await org_service.get_current_org(scope)
    return _invite_link(org, settings)


@router_scoped.post("/invite-link", response_model=InviteLinkResponse)
async def set_invite_link(
    body: InviteLinkAction,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    settings: Settings = Depends(get_app_settings),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Enable, disable or regenerate the shareable join code (Admin only)."""
    org = await org_service.set_invite_link(scope, body.action, ctx.user_id, audit)
    return _invite_link(org, settings)


@router_scoped.get("/audit", response_model=AuditLogPage)
async def list_audit(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
):
    """Newest-first audit trail for the active org (Admin only)."""
    rows, total = await audit_service.list_audit_logs(scope, page=page, per_page=per_page)
    return AuditLogPage(
        data=[
            AuditLogRead(
                id=row.id,
                user_id=row.user_id,
                action=row.action,
                entity_type=row.entity_type,
                entity_id=row.entity_id,
                details=row.details,
                created_at=row.created_at,
            )
            for row in rows
        ],
        pagination=Pagination(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=audit_service.total_pages(total, per_page),
        ),
    )
