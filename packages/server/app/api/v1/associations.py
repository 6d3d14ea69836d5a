"""
Association review endpoints.

GET    /api/v1/associations?status=          — List associations (admin)
POST   /api/v1/associations/{id}/approve     — Approve a pending request (admin)
POST   /api/v1/associations/{id}/reject      — Reject a pending request (admin)
PATCH  /api/v1/associations/{id}             — Change an approved link's role (admin)
DELETE /api/v1/associations/{id}             — Remove a link in any status (admin)
GET    /api/v1/me/fractions                  — The caller's own associations
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from app.core.auth import get_tenant_scope, require_org_admin, require_org_member
from app.core.context import OrgContext
from app.core.tenancy import TenantScope
from app.services import associations as association_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.common import AssociationStatus
from zelus_shared.schemas.fractions import AssociationRead, AssociationUpdate

router = APIRouter()
router_me = APIRouter()


@router.get("", response_model=List[AssociationRead])
async def list_associations(
    status: Optional[AssociationStatus] = None,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await association_service.list_associations(scope, status)


@router.post("/{association_id}/approve", response_model=AssociationRead)
async def approve_association(
    association_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await association_service.approve_association(
        scope, association_id, ctx.user_id, audit
    )


@router.post("/{association_id}/reject", response_model=AssociationRead)
async def reject_association(
    association_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await association_service.reject_association(
        scope, association_id, ctx.user_id, audit
    )


@router.patch("/{association_id}", response_model=AssociationRead)
async def update_association(
    association_id: uuid.UUID,
    body: AssociationUpdate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await association_service.update_association_role(
        scope, association_id, body.role, ctx.user_id, audit
    )


@router.delete("/{association_id}", status_code=204)
async def remove_association(
    association_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    await association_service.remove_association(scope, association_id, ctx.user_id, audit)
    return Response(status_code=204)


@router_me.get("/fractions", response_model=List[AssociationRead])
async def my_fractions(
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    """Fractions the caller is linked to in the active org, any status."""
    return await association_service.list_user_associations(scope, ctx.user_id)
