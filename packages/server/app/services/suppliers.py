"""
Supplier service for the condominium's contractor directory.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import update

from app.core.tenancy import TenantScope
from app.models.supplier import MaintenanceRecord, Supplier
from app.services.audit import AuditDispatcher
from zelus_shared.schemas.common import Category
from zelus_shared.schemas.suppliers import SupplierCreate, SupplierUpdate

log = structlog.get_logger()


async def list_suppliers(
    scope: TenantScope, category: Optional[Category] = None
) -> list[Supplier]:
    stmt = scope.select(Supplier)
    if category is not None:
        stmt = stmt.where(Supplier.category == category.value)
    return await scope.all(stmt.order_by(Supplier.name))


async def get_supplier(scope: TenantScope, supplier_id: uuid.UUID) -> Supplier:
    return await scope.get_or_404(Supplier, supplier_id, "Supplier")


async def create_supplier(
    scope: TenantScope,
    data: SupplierCreate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Supplier:
    values = data.model_dump()
    values["category"] = data.category.value
    supplier = scope.add(Supplier(**values))
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="supplier.created",
        entity_type="supplier",
        entity_id=supplier.id,
        details={"name": supplier.name},
    )
    log.info("supplier.created", supplier_id=str(supplier.id))
    return supplier


async def update_supplier(
    scope: TenantScope,
    supplier_id: uuid.UUID,
    data: SupplierUpdate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Supplier:
    supplier = await get_supplier(scope, supplier_id)
    changes = data.model_dump(exclude_unset=True)
    for required in ("name", "category"):
        if changes.get(required, "") is None:
            del changes[required]

    for key, value in changes.items():
        setattr(supplier, key, value.value if isinstance(value, Category) else value)
    scope.touch(supplier)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="supplier.updated",
        entity_type="supplier",
        entity_id=supplier.id,
        details={"fields": ",".join(sorted(changes))},
    )
    return supplier


async def delete_supplier(
    scope: TenantScope,
    supplier_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> None:
    """Delete a supplier; its maintenance records are kept, unlinked."""
    supplier = await get_supplier(scope, supplier_id)

    await scope.session.execute(
        update(MaintenanceRecord)
        .where(scope.where_org(MaintenanceRecord), MaintenanceRecord.supplier_id == supplier_id)
        .values(supplier_id=None)
    )
    name = supplier.name
    await scope.delete(supplier)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="supplier.deleted",
        entity_type="supplier",
        entity_id=supplier_id,
        details={"name": name},
    )
    log.info("supplier.deleted", supplier_id=str(supplier_id))
