"""
Fraction endpoints: unit CRUD, association requests and fraction invites.

Listing and reading are open to every member; structural changes are for org
admins; a fraction's owner-admin may see its associations and invite into it.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response

from app.core.auth import (
    get_app_settings,
    get_tenant_scope,
    require_fraction_manager,
    require_org_admin,
    require_org_member,
)
from app.core.config import Settings
from app.core.context import OrgContext
from app.core.tenancy import TenantScope
from app.services import associations as association_service
from app.services import fractions as fraction_service
from app.services import invites as invite_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.documents import FractionInviteCreate, InviteCreated
from zelus_shared.schemas.fractions import (
    AssociationRead,
    AssociationRequest,
    BulkAssignResult,
    BulkAssignUsers,
    FractionBulkCreate,
    FractionBulkResult,
    FractionCreate,
    FractionRead,
    FractionUpdate,
)

from .invites import to_invite_created

router = APIRouter()


# ---------------------------------------------------------------------------
# Fraction CRUD
# ---------------------------------------------------------------------------

@router.get("", response_model=List[FractionRead])
async def list_fractions(
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await fraction_service.list_fractions(scope)


@router.post("", response_model=FractionRead, status_code=201)
async def create_fraction(
    body: FractionCreate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await fraction_service.create_fraction(scope, body, ctx.user_id, audit)


@router.post("/bulk", response_model=FractionBulkResult, status_code=201)
async def bulk_create_fractions(
    body: FractionBulkCreate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Create fractions from a list of labels; existing or blank labels are skipped."""
    created, skipped = await fraction_service.bulk_create_fractions(
        scope, body.labels, ctx.user_id, audit
    )
    return FractionBulkResult(created=created, skipped=skipped)


@router.get("/{fraction_id}", response_model=FractionRead)
async def get_fraction(
    fraction_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await fraction_service.get_fraction(scope, fraction_id)


@router.patch("/{fraction_id}", response_model=FractionRead)
async def update_fraction(
    fraction_id: uuid.UUID,
    body: FractionUpdate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await fraction_service.update_fraction(scope, fraction_id, body, ctx.user_id, audit)


@router.delete("/{fraction_id}", status_code=204)
async def delete_fraction(
    fraction_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Delete a fraction (Admin only). Refused while members are associated."""
    await fraction_service.delete_fraction(scope, fraction_id, ctx.user_id, audit)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Associations & invites for one fraction
# ---------------------------------------------------------------------------

@router.post("/{fraction_id}/associations", response_model=AssociationRead, status_code=201)
async def request_association(
    fraction_id: uuid.UUID,
    body: AssociationRequest,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Ask to be linked to this fraction. An admin approves or rejects."""
    return await association_service.request_association(
        scope, fraction_id, ctx.user_id, body.role, audit
    )


@router.get("/{fraction_id}/associations", response_model=List[AssociationRead])
async def list_fraction_associations(
    fraction_id: uuid.UUID,
    ctx: OrgContext = Depends(require_fraction_manager),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await association_service.list_fraction_associations(scope, fraction_id)


@router.post("/{fraction_id}/associations/bulk", response_model=BulkAssignResult)
async def bulk_assign_users(
    fraction_id: uuid.UUID,
    body: BulkAssignUsers,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Link several members to this fraction, already approved (Admin only)."""
    created, skipped = await association_service.bulk_assign_users(
        scope, fraction_id, body.user_ids, ctx.user_id, audit
    )
    return BulkAssignResult(created=created, skipped=skipped)


@router.post("/{fraction_id}/invites", response_model=InviteCreated, status_code=201)
async def create_fraction_invite(
    fraction_id: uuid.UUID,
    body: FractionInviteCreate,
    ctx: OrgContext = Depends(require_fraction_manager),
    scope: TenantScope = Depends(get_tenant_scope),
    settings: Settings = Depends(get_app_settings),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Invite someone into this fraction (org admin or the fraction's owner-admin)."""
    invite = await invite_service.create_fraction_invite(
        scope,
        fraction_id,
        body.email,
        body.role,
        ctx.user_id,
        audit,
        app_url=settings.app_url,
        expire_days=settings.invite_expire_days,
    )
    return to_invite_created(invite, settings)
