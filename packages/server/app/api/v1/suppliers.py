"""
Supplier endpoints.

GET    /api/v1/suppliers?category=     — List suppliers
POST   /api/v1/suppliers               — Create (admin)
GET    /api/v1/suppliers/{id}          — Detail
PATCH  /api/v1/suppliers/{id}          — Update (admin)
DELETE /api/v1/suppliers/{id}          — Delete (admin)
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from app.core.auth import get_tenant_scope, require_org_admin, require_org_member
from app.core.context import OrgContext
from app.core.tenancy import TenantScope
from app.services import suppliers as supplier_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.common import Category
from zelus_shared.schemas.suppliers import SupplierCreate, SupplierRead, SupplierUpdate

router = APIRouter()


@router.get("", response_model=List[SupplierRead])
async def list_suppliers(
    category: Optional[Category] = None,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await supplier_service.list_suppliers(scope, category)


@router.post("", response_model=SupplierRead, status_code=201)
async def create_supplier(
    body: SupplierCreate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await supplier_service.create_supplier(scope, body, ctx.user_id, audit)


@router.get("/{supplier_id}", response_model=SupplierRead)
async def get_supplier(
    supplier_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await supplier_service.get_supplier(scope, supplier_id)


@router.patch("/{supplier_id}", response_model=SupplierRead)
async def update_supplier(
    supplier_id: uuid.UUID,
    body: SupplierUpdate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await supplier_service.update_supplier(scope, supplier_id, body, ctx.user_id, audit)


@router.delete("/{supplier_id}", status_code=204)
async def delete_supplier(
    supplier_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    await supplier_service.delete_supplier(scope, supplier_id, ctx.user_id, audit)
    return Response(status_code=204)
