"""
Maintenance record endpoints.

GET    /api/v1/maintenance?supplier_id=   — List records, newest work first
POST   /api/v1/maintenance                — Create (admin)
GET    /api/v1/maintenance/{id}           — Detail
PATCH  /api/v1/maintenance/{id}           — Update (admin)
DELETE /api/v1/maintenance/{id}           — Delete (admin)
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from app.core.auth import get_tenant_scope, require_org_admin, require_org_member
from app.core.context import OrgContext
from app.core.tenancy import TenantScope
from app.services import maintenance as maintenance_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.suppliers import MaintenanceCreate, MaintenanceRead, MaintenanceUpdate

router = APIRouter()


@router.get("", response_model=List[MaintenanceRead])
async def list_records(
    supplier_id: Optional[uuid.UUID] = None,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await maintenance_service.list_records(scope, supplier_id)


@router.post("", response_model=MaintenanceRead, status_code=201)
async def create_record(
    body: MaintenanceCreate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Log maintenance work. A supplier, if given, must belong to this org."""
    return await maintenance_service.create_record(scope, body, ctx.user_id, audit)


@router.get("/{record_id}", response_model=MaintenanceRead)
async def get_record(
    record_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await maintenance_service.get_record(scope, record_id)


@router.patch("/{record_id}", response_model=MaintenanceRead)
async def update_record(
    record_id: uuid.UUID,
    body: MaintenanceUpdate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await maintenance_service.update_record(scope, record_id, body, ctx.user_id, audit)


@router.delete("/{record_id}", status_code=204)
async def delete_record(
    record_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    await maintenance_service.delete_record(scope, record_id, ctx.user_id, audit)
    return Response(status_code=204)
