"""
Maintenance records: work performed on the building, optionally by a supplier.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlmodel import select

from app.core.tenancy import TenantScope
from app.models.supplier import MaintenanceRecord, Supplier
from app.services.audit import AuditDispatcher
from zelus_shared.schemas.suppliers import MaintenanceCreate, MaintenanceUpdate

log = structlog.get_logger()


def _to_read(record: MaintenanceRecord, supplier_name: Optional[str]) -> dict:
    return {
        "id": record.id,
        "title": record.title,
        "description": record.description,
        "supplier_id": record.supplier_id,
        "supplier_name": supplier_name,
        "performed_at": record.performed_at,
        "cost": record.cost,
        "created_by": record.created_by,
        "created_at": record.created_at,
    }


async def _supplier_name(scope: TenantScope, supplier_id: Optional[uuid.UUID]) -> Optional[str]:
    """Name of a supplier in this org; a supplier from elsewhere is 404."""
    if supplier_id is None:
        return None
    supplier = await scope.get_or_404(Supplier, supplier_id, "Supplier")
    return supplier.name


async def list_records(
    scope: TenantScope, supplier_id: Optional[uuid.UUID] = None
) -> list[dict]:
    stmt = (
        select(MaintenanceRecord, Supplier.name)
        .outerjoin(Supplier, Supplier.id == MaintenanceRecord.supplier_id)
        .where(scope.where_org(MaintenanceRecord))
    )
    if supplier_id is not None:
        stmt = stmt.where(MaintenanceRecord.supplier_id == supplier_id)
    result = await scope.session.execute(stmt.order_by(MaintenanceRecord.performed_at.desc()))
    return [_to_read(record, name) for record, name in result.all()]


async def get_record(scope: TenantScope, record_id: uuid.UUID) -> dict:
    record = await scope.get_or_404(MaintenanceRecord, record_id, "Maintenance record")
    return _to_read(record, await _supplier_name(scope, record.supplier_id))


async def create_record(
    scope: TenantScope,
    data: MaintenanceCreate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> dict:
    supplier_name = await _supplier_name(scope, data.supplier_id)
    record = scope.add(
        MaintenanceRecord(
            supplier_id=data.supplier_id,
            title=data.title.strip(),
            description=data.description,
            performed_at=data.performed_at,
            cost=data.cost,
            created_by=actor_id,
        )
    )
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="maintenance.created",
        entity_type="maintenance_record",
        entity_id=record.id,
        details={"title": record.title, "supplier_id": record.supplier_id},
    )
    log.info("maintenance.created", record_id=str(record.id))
    return _to_read(record, supplier_name)


async def update_record(
    scope: TenantScope,
    record_id: uuid.UUID,
    data: MaintenanceUpdate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> dict:
    record = await scope.get_or_404(MaintenanceRecord, record_id, "Maintenance record")
    changes = data.model_dump(exclude_unset=True)
    for required in ("title", "description", "performed_at"):
        if changes.get(required, "") is None:
            del changes[required]

    for key, value in changes.items():
        setattr(record, key, value)
    supplier_name = await _supplier_name(scope, record.supplier_id)
    scope.touch(record)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="maintenance.updated",
        entity_type="maintenance_record",
        entity_id=record.id,
        details={"fields": ",".join(sorted(changes))},
    )
    return _to_read(record, supplier_name)


async def delete_record(
    scope: TenantScope,
    record_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> None:
    record = await scope.get_or_404(MaintenanceRecord, record_id, "Maintenance record")
    title = record.title
    await scope.delete(record)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="maintenance.deleted",
        entity_type="maintenance_record",
        entity_id=record_id,
        details={"title": title},
    )
