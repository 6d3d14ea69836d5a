"""
Document service: metadata for files held by the upload provider.
"""

from __future__ import annotations

import uuid

import structlog

from app.core.tenancy import TenantScope
from app.models.document import Document
from app.services.audit import AuditDispatcher
from zelus_shared.schemas.common import DocumentStatus
from zelus_shared.schemas.documents import DocumentCreate

log = structlog.get_logger()


async def list_documents(scope: TenantScope) -> list[Document]:
    return await scope.all(scope.select(Document).order_by(Document.created_at.desc()))


async def get_document(scope: TenantScope, document_id: uuid.UUID) -> Document:
    return await scope.get_or_404(Document, document_id, "Document")


async def register_document(
    scope: TenantScope,
    data: DocumentCreate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Document:
    """Record an uploaded file. No content processing runs, so it is ready at once."""
    document = scope.add(
        Document(
            uploaded_by=actor_id,
            file_name=data.file_name,
            file_url=data.file_url,
            file_size=data.file_size,
            mime_type=data.mime_type,
            status=DocumentStatus.READY.value,
        )
    )
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="document.uploaded",
        entity_type="document",
        entity_id=document.id,
        details={"file_name": document.file_name, "size": document.file_size},
    )
    log.info("document.uploaded", document_id=str(document.id))
    return document


async def delete_document(
    scope: TenantScope,
    document_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> None:
    document = await get_document(scope, document_id)
    file_name = document.file_name
    await scope.delete(document)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="document.deleted",
        entity_type="document",
        entity_id=document_id,
        details={"file_name": file_name},
    )
    log.info("document.deleted", document_id=str(document_id))
