"""
Fraction associations: members ask to be linked to a unit, admins decide.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlmodel import select

from app.core.errors import NotFound
from app.core.tenancy import TenantScope
from app.models.fraction import Fraction, UserFraction
from app.models.membership import Membership
from app.models.user import User
from app.services import notifications as notification_service
from app.services.audit import AuditDispatcher
from app.services.notifications import NotificationType
from zelus_shared.schemas.common import AssociationStatus, FractionRole

log = structlog.get_logger()


def _to_read(assoc: UserFraction, label: Optional[str], user_name: Optional[str]) -> dict:
    return {
        "id": assoc.id,
        "user_id": assoc.user_id,
        "fraction_id": assoc.fraction_id,
        "fraction_label": label,
        "user_name": user_name,
        "role": assoc.role,
        "status": assoc.status,
        "created_at": assoc.created_at,
    }


def _joined(scope: TenantScope):
    return (
        select(UserFraction, Fraction.label, User.name)
        .join(Fraction, Fraction.id == UserFraction.fraction_id)
        .join(User, User.id == UserFraction.user_id)
        .where(scope.where_org(UserFraction))
    )


async def _open_association(
    scope: TenantScope, user_id: uuid.UUID, fraction_id: uuid.UUID
) -> Optional[UserFraction]:
    result = await scope.session.execute(
        scope.select(UserFraction).where(
            UserFraction.user_id == user_id,
            UserFraction.fraction_id == fraction_id,
            UserFraction.status.in_(
                [AssociationStatus.PENDING.value, AssociationStatus.APPROVED.value]
            ),
        )
    )
    return result.scalars().first()


async def request_association(
    scope: TenantScope,
    fraction_id: uuid.UUID,
    user_id: uuid.UUID,
    role: FractionRole,
    audit: AuditDispatcher,
) -> dict:
    """Create a pending association for the caller."""
    fraction = await scope.get_or_404(Fraction, fraction_id, "Fraction")
    if await _open_association(scope, user_id, fraction_id) is not None:
        raise HTTPException(
            status_code=409,
            detail="You already have a pending or approved association with this fraction",
        )

    assoc = scope.add(
        UserFraction(
            user_id=user_id,
            fraction_id=fraction_id,
            role=role.value,
            status=AssociationStatus.PENDING.value,
        )
    )
    await scope.flush()

    audit.record(
        scope,
        user_id=user_id,
        action="association.requested",
        entity_type="user_fraction",
        entity_id=assoc.id,
        details={"fraction_id": fraction_id, "role": role},
    )
    log.info("association.requested", fraction_id=str(fraction_id), role=role.value)
    user = await scope.session.get(User, user_id)
    user_name = user.name if user else None

    admins = [a for a in await notification_service.org_admin_ids(scope) if a != user_id]
    notification_service.notify_many(
        scope,
        admins,
        NotificationType.ASSOCIATION_REQUESTED,
        f"New association request: {fraction.label}",
        f"{user_name} asked to be linked to fraction {fraction.label}.",
        {"fraction_id": fraction_id, "association_id": assoc.id},
    )
    return _to_read(assoc, fraction.label, user_name)


async def list_associations(
    scope: TenantScope, status: Optional[AssociationStatus] = None
) -> list[dict]:
    stmt = _joined(scope)
    if status is not None:
        stmt = stmt.where(UserFraction.status == status.value)
    result = await scope.session.execute(stmt.order_by(UserFraction.created_at.desc()))
    return [_to_read(a, label, name) for a, label, name in result.all()]


async def list_fraction_associations(scope: TenantScope, fraction_id: uuid.UUID) -> list[dict]:
    await scope.get_or_404(Fraction, fraction_id, "Fraction")
    result = await scope.session.execute(
        _joined(scope)
        .where(UserFraction.fraction_id == fraction_id)
        .order_by(UserFraction.created_at)
    )
    return [_to_read(a, label, name) for a, label, name in result.all()]


async def list_user_associations(scope: TenantScope, user_id: uuid.UUID) -> list[dict]:
    result = await scope.session.execute(
        _joined(scope)
        .where(UserFraction.user_id == user_id)
        .order_by(Fraction.label)
    )
    return [_to_read(a, label, name) for a, label, name in result.all()]


async def _get_pending(scope: TenantScope, association_id: uuid.UUID) -> UserFraction:
    assoc = await scope.get_or_404(UserFraction, association_id, "Association")
    if assoc.status != AssociationStatus.PENDING.value:
        raise HTTPException(status_code=409, detail=f"Association is already {assoc.status}")
    return assoc


async def _owner_admin_taken(
    scope: TenantScope, fraction_id: uuid.UUID, exclude_id: Optional[uuid.UUID] = None
) -> bool:
    stmt = scope.select(UserFraction).where(
        UserFraction.fraction_id == fraction_id,
        UserFraction.role == FractionRole.FRACTION_OWNER_ADMIN.value,
        UserFraction.status == AssociationStatus.APPROVED.value,
    )
    if exclude_id is not None:
        stmt = stmt.where(UserFraction.id != exclude_id)
    result = await scope.session.execute(stmt)
    return result.scalars().first() is not None


async def _label(scope: TenantScope, fraction_id: uuid.UUID) -> str:
    result = await scope.session.execute(
        select(Fraction.label).where(scope.where_org(Fraction), Fraction.id == fraction_id)
    )
    return result.scalar_one()


async def approve_association(
    scope: TenantScope,
    association_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> UserFraction:
    """Approve a pending association. A fraction has at most one approved owner-admin."""
    assoc = await _get_pending(scope, association_id)

    if assoc.role == FractionRole.FRACTION_OWNER_ADMIN.value and await _owner_admin_taken(
        scope, assoc.fraction_id
    ):
        raise HTTPException(
            status_code=409,
            detail="This fraction already has an approved owner-admin",
        )

    assoc.status = AssociationStatus.APPROVED.value
    assoc.approved_by = actor_id
    scope.touch(assoc)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="association.approved",
        entity_type="user_fraction",
        entity_id=assoc.id,
        details={"user_id": assoc.user_id, "fraction_id": assoc.fraction_id},
    )
    label = await _label(scope, assoc.fraction_id)
    notification_service.notify(
        scope,
        assoc.user_id,
        NotificationType.ASSOCIATION_APPROVED,
        f"Association approved: {label}",
        f"Your association with fraction {label} was approved.",
        {"fraction_id": assoc.fraction_id},
    )
    log.info("association.approved", association_id=str(assoc.id))
    return assoc


async def reject_association(
    scope: TenantScope,
    association_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> UserFraction:
    assoc = await _get_pending(scope, association_id)
    assoc.status = AssociationStatus.REJECTED.value
    scope.touch(assoc)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="association.rejected",
        entity_type="user_fraction",
        entity_id=assoc.id,
        details={"user_id": assoc.user_id, "fraction_id": assoc.fraction_id},
    )
    label = await _label(scope, assoc.fraction_id)
    notification_service.notify(
        scope,
        assoc.user_id,
        NotificationType.ASSOCIATION_REJECTED,
        f"Association rejected: {label}",
        f"Your association with fraction {label} was rejected.",
        {"fraction_id": assoc.fraction_id},
    )
    log.info("association.rejected", association_id=str(assoc.id))
    return assoc


# ---------------------------------------------------------------------------
# Admin management of existing links
# ---------------------------------------------------------------------------

async def update_association_role(
    scope: TenantScope,
    association_id: uuid.UUID,
    role: FractionRole,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> UserFraction:
    """Promote or demote an approved link. Owner-admin stays unique per fraction."""
    assoc = await scope.get_or_404(UserFraction, association_id, "Association")
    if assoc.status != AssociationStatus.APPROVED.value:
        raise HTTPException(status_code=409, detail="Only approved associations can change role")
    if assoc.role == role.value:
        return assoc

    if role is FractionRole.FRACTION_OWNER_ADMIN and await _owner_admin_taken(
        scope, assoc.fraction_id, exclude_id=assoc.id
    ):
        raise HTTPException(
            status_code=409,
            detail="This fraction already has an approved owner-admin",
        )

    previous = assoc.role
    assoc.role = role.value
    scope.touch(assoc)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="association.role_changed",
        entity_type="user_fraction",
        entity_id=assoc.id,
        details={"user_id": assoc.user_id, "from": previous, "to": role},
    )
    label = await _label(scope, assoc.fraction_id)
    notification_service.notify(
        scope,
        assoc.user_id,
        NotificationType.ASSOCIATION_ROLE_CHANGED,
        f"Role changed: {label}",
        f"Your role in fraction {label} is now {role.value}.",
        {"fraction_id": assoc.fraction_id},
    )
    log.info("association.role_changed", association_id=str(assoc.id), role=role.value)
    return assoc


async def remove_association(
    scope: TenantScope,
    association_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> None:
    """Delete a link in any status."""
    assoc = await scope.get_or_404(UserFraction, association_id, "Association")
    user_id, fraction_id = assoc.user_id, assoc.fraction_id
    label = await _label(scope, fraction_id)
    await scope.delete(assoc)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="association.removed",
        entity_type="user_fraction",
        entity_id=association_id,
        details={"user_id": user_id, "fraction_id": fraction_id},
    )
    notification_service.notify(
        scope,
        user_id,
        NotificationType.ASSOCIATION_REMOVED,
        f"Association removed: {label}",
        f"Your association with fraction {label} was removed by an administrator.",
        {"fraction_id": fraction_id},
    )
    log.info("association.removed", association_id=str(association_id))


async def _open_links(scope: TenantScope, column, *criteria) -> set[uuid.UUID]:
    """``column`` values of pending or approved links matching ``criteria``."""
    result = await scope.session.execute(
        select(column).where(
            scope.where_org(UserFraction),
            *criteria,
            UserFraction.status.in_(
                [AssociationStatus.PENDING.value, AssociationStatus.APPROVED.value]
            ),
        )
    )
    return set(result.scalars().all())


def _approved_link(user_id: uuid.UUID, fraction_id: uuid.UUID, actor_id: uuid.UUID) -> UserFraction:
    return UserFraction(
        user_id=user_id,
        fraction_id=fraction_id,
        role=FractionRole.FRACTION_MEMBER.value,
        status=AssociationStatus.APPROVED.value,
        approved_by=actor_id,
    )


async def bulk_assign_users(
    scope: TenantScope,
    fraction_id: uuid.UUID,
    user_ids: list[uuid.UUID],
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> tuple[int, int]:
    """Link org members to one fraction as approved fraction members.

    Users already linked (pending or approved) and non-members are skipped.
    Returns ``(created, skipped)``.
    """
    label = (await scope.get_or_404(Fraction, fraction_id, "Fraction")).label
    taken = await _open_links(
        scope, UserFraction.user_id, UserFraction.fraction_id == fraction_id
    )
    result = await scope.session.execute(
        select(Membership.user_id).where(
            scope.where_org(Membership), Membership.user_id.in_(user_ids)
        )
    )
    members = set(result.scalars().all())

    created: list[uuid.UUID] = []
    for user_id in dict.fromkeys(user_ids):
        if user_id in taken or user_id not in members:
            continue
        scope.add(_approved_link(user_id, fraction_id, actor_id))
        created.append(user_id)
    await scope.flush()

    if created:
        audit.record(
            scope,
            user_id=actor_id,
            action="association.bulk_assigned",
            entity_type="fraction",
            entity_id=fraction_id,
            details={"count": len(created)},
        )
        notification_service.notify_many(
            scope,
            created,
            NotificationType.ASSOCIATION_APPROVED,
            f"Linked to fraction {label}",
            f"An administrator linked you to fraction {label}.",
            {"fraction_id": fraction_id},
        )
    log.info("association.bulk_assigned", fraction_id=str(fraction_id), created=len(created))
    return len(created), len(user_ids) - len(created)


async def bulk_assign_fractions(
    scope: TenantScope,
    user_id: uuid.UUID,
    fraction_ids: list[uuid.UUID],
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> tuple[int, int]:
    """Link one org member to many fractions as an approved fraction member.

    Fractions already linked and unknown fraction ids are skipped.
    Returns ``(created, skipped)``.
    """
    result = await scope.session.execute(
        scope.select(Membership).where(Membership.user_id == user_id)
    )
    if result.scalar_one_or_none() is None:
        raise NotFound("Member not found")

    taken = await _open_links(scope, UserFraction.fraction_id, UserFraction.user_id == user_id)
    result = await scope.session.execute(
        select(Fraction.id, Fraction.label).where(
            scope.where_org(Fraction), Fraction.id.in_(fraction_ids)
        )
    )
    labels = dict(result.all())

    created: list[uuid.UUID] = []
    for fraction_id in dict.fromkeys(fraction_ids):
        if fraction_id in taken or fraction_id not in labels:
            continue
        scope.add(_approved_link(user_id, fraction_id, actor_id))
        created.append(fraction_id)
    await scope.flush()

    if created:
        audit.record(
            scope,
            user_id=actor_id,
            action="association.bulk_assigned",
            entity_type="user",
            entity_id=user_id,
            details={"count": len(created)},
        )
        names = ", ".join(sorted(labels[f] for f in created))
        notification_service.notify(
            scope,
            user_id,
            NotificationType.ASSOCIATION_APPROVED,
            f"Linked to {len(created)} fraction(s)",
            f"An administrator linked you to: {names}.",
            {"fraction_ids": ",".join(str(f) for f in created)},
        )
    log.info("association.bulk_assigned", user_id=str(user_id), created=len(created))
    return len(created), len(fraction_ids) - len(created)
