"""
Fraction service — CRUD for condominium units.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import and_, delete, func, update
from sqlmodel import select

from app.core.tenancy import TenantScope
from app.models.fraction import Fraction, UserFraction
from app.models.invite import Invite
from app.models.ticket import Ticket
from app.services.audit import AuditDispatcher
from zelus_shared.schemas.common import AssociationStatus
from zelus_shared.schemas.fractions import FractionCreate, FractionUpdate

log = structlog.get_logger()


def _to_read(fraction: Fraction, member_count: int = 0) -> dict:
    return {
        "id": fraction.id,
        "label": fraction.label,
        "description": fraction.description,
        "member_count": member_count,
        "created_at": fraction.created_at,
        "updated_at": fraction.updated_at,
    }


async def _label_taken(
    scope: TenantScope, label: str, exclude_id: Optional[uuid.UUID] = None
) -> bool:
    stmt = scope.select(Fraction).where(Fraction.label == label)
    if exclude_id is not None:
        stmt = stmt.where(Fraction.id != exclude_id)
    result = await scope.session.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _approved_count(scope: TenantScope, fraction_id: uuid.UUID) -> int:
    result = await scope.session.execute(
        select(func.count()).select_from(UserFraction).where(
            scope.where_org(UserFraction),
            UserFraction.fraction_id == fraction_id,
            UserFraction.status == AssociationStatus.APPROVED.value,
        )
    )
    return result.scalar_one()


async def list_fractions(scope: TenantScope) -> list[dict]:
    """Fractions ordered by label, with approved-member counts."""
    stmt = (
        select(Fraction, func.count(UserFraction.id))
        .outerjoin(
            UserFraction,
            and_(
                UserFraction.fraction_id == Fraction.id,
                UserFraction.status == AssociationStatus.APPROVED.value,
            ),
        )
        .where(scope.where_org(Fraction))
        .group_by(Fraction.id)
        .order_by(Fraction.label)
    )
    result = await scope.session.execute(stmt)
    return [_to_read(fraction, count) for fraction, count in result.all()]


async def get_fraction(scope: TenantScope, fraction_id: uuid.UUID) -> dict:
    fraction = await scope.get_or_404(Fraction, fraction_id, "Fraction")
    return _to_read(fraction, await _approved_count(scope, fraction_id))


async def create_fraction(
    scope: TenantScope,
    data: FractionCreate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> dict:
    if await _label_taken(scope, data.label):
        raise HTTPException(status_code=409, detail="A fraction with this label already exists")

    fraction = scope.add(Fraction(label=data.label, description=data.description))
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="fraction.created",
        entity_type="fraction",
        entity_id=fraction.id,
        details={"label": fraction.label},
    )
    log.info("fraction.created", org_id=str(scope.org_id), fraction_id=str(fraction.id))
    return _to_read(fraction)


async def bulk_create_fractions(
    scope: TenantScope,
    labels: list[str],
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> tuple[list[dict], list[str]]:
    """Create many fractions at once. Blank and duplicate labels are skipped."""
    existing_result = await scope.session.execute(
        select(Fraction.label).where(scope.where_org(Fraction))
    )
    seen = set(existing_result.scalars().all())

    created: list[Fraction] = []
    skipped: list[str] = []
    for raw in labels:
        label = raw.strip()
        if not label or label in seen or len(label) > 50:
            skipped.append(raw)
            continue
        seen.add(label)
        created.append(scope.add(Fraction(label=label)))
    await scope.flush()

    if created:
        audit.record(
            scope,
            user_id=actor_id,
            action="fraction.bulk_created",
            entity_type="fraction",
            entity_id=scope.org_id,
            details={"count": len(created)},
        )
    log.info("fraction.bulk_created", org_id=str(scope.org_id), created=len(created), skipped=len(skipped))
    return [_to_read(f) for f in created], skipped


async def update_fraction(
    scope: TenantScope,
    fraction_id: uuid.UUID,
    data: FractionUpdate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> dict:
    fraction = await scope.get_or_404(Fraction, fraction_id, "Fraction")
    changes = data.model_dump(exclude_unset=True)

    label = changes.pop("label", None)
    if label is not None:
        label = label.strip()
        if not label:
            raise HTTPException(status_code=422, detail="Label must not be blank")
        if await _label_taken(scope, label, exclude_id=fraction_id):
            raise HTTPException(status_code=409, detail="A fraction with this label already exists")
        changes["label"] = label

    for key, value in changes.items():
        setattr(fraction, key, value)
    scope.touch(fraction)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="fraction.updated",
        entity_type="fraction",
        entity_id=fraction_id,
        details=changes,
    )
    return _to_read(fraction, await _approved_count(scope, fraction_id))


async def delete_fraction(
    scope: TenantScope,
    fraction_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> None:
    """Delete a fraction. Refused while approved members are associated.

    Pending associations and invites for the fraction go with it; its tickets
    stay and lose the link.
    """
    fraction = await scope.get_or_404(Fraction, fraction_id, "Fraction")
    if await _approved_count(scope, fraction_id) > 0:
        raise HTTPException(
            status_code=409,
            detail="Cannot delete a fraction with associated members",
        )

    await scope.session.execute(
        delete(UserFraction).where(
            scope.where_org(UserFraction), UserFraction.fraction_id == fraction_id
        )
    )
    await scope.session.execute(
        update(Ticket)
        .where(scope.where_org(Ticket), Ticket.fraction_id == fraction_id)
        .values(fraction_id=None)
    )
    await scope.session.execute(
        delete(Invite).where(scope.where_org(Invite), Invite.fraction_id == fraction_id)
    )
    label = fraction.label
    await scope.delete(fraction)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="fraction.deleted",
        entity_type="fraction",
        entity_id=fraction_id,
        details={"label": label},
    )
    log.info("fraction.deleted", org_id=str(scope.org_id), fraction_id=str(fraction_id))
