"""
Document metadata endpoints. File bytes live with the upload provider.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response

from app.core.auth import get_tenant_scope, require_org_admin, require_org_member
from app.core.context import OrgContext
from app.core.tenancy import TenantScope
from app.services import documents as document_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.documents import DocumentCreate, DocumentRead

router = APIRouter()


@router.get("", response_model=List[DocumentRead])
async def list_documents(
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await document_service.list_documents(scope)


@router.post("", response_model=DocumentRead, status_code=201)
async def register_document(
    body: DocumentCreate,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Register an uploaded file's metadata (Admin only)."""
    return await document_service.register_document(scope, body, ctx.user_id, audit)


@router.get("/{document_id}", response_model=DocumentRead)
async def get_document(
    document_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await document_service.get_document(scope, document_id)


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_admin),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    await document_service.delete_document(scope, document_id, ctx.user_id, audit)
    return Response(status_code=204)
