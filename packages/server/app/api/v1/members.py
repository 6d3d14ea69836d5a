"""
Member endpoints for the active organization.

GET    /api/v1/members              — List members
PATCH  /api/v1/members/{user_id}    — Change org role (admin)
DELETE /api/v1/members/{user_id}    — Remove member (admin)
POST   /api/v1/members/{user_id}/fractions — Link to many fractions at once (admin)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response

from app.core.auth import get_tenant_scope, require_org_admin, require_org_member
from app.core.context import OrgContext
from app.core.tenancy import TenantScope
from app.services import associations as association_service
from app.services import members as member_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.fractions import BulkAssignFractions, BulkAssignResult
from zelus_shared.schemas.users import MemberListResponse, MemberResponse, MemberUpdateRequest

router = APIRouter()


@router.get("", response_model=MemberListResponse)
async def list_members(
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return MemberListResponse(data=await member_service.list_members(scope))


@router.patch("/{user_id}", response_model=MemberResponse)
async def update_member(
    user_id: uuid.UUID,
    body: MemberUpdateRequest,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Promote or demote a member (Admin only). Ownership is fixed."""
    await member_service.update_member_role(scope, user_id, body.role, ctx.user_id, audit)
    return await member_service.get_member(scope, user_id)


@router.delete("/{user_id}", status_code=204)
async def remove_member(
    user_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Remove a member and their fraction links (Admin only)."""
    await member_service.remove_member(scope, user_id, ctx.user_id, audit)
    return Response(status_code=204)


@router.post("/{user_id}/fractions", response_model=BulkAssignResult)
async def assign_fractions(
    user_id: uuid.UUID,
    body: BulkAssignFractions,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Link a member to several fractions at once, already approved (Admin only)."""
    created, skipped = await association_service.bulk_assign_fractions(
        scope, user_id, body.fraction_ids, ctx.user_id, audit
    )
    return BulkAssignResult(created=created, skipped=skipped)
