"""
Membership service: org member listing, role changes and removal.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import HTTPException
from sqlalchemy import delete
from sqlmodel import select

from app.core.errors import NotFound
from app.core.tenancy import TenantScope
from app.models.fraction import UserFraction
from app.models.membership import Membership
from app.models.user import User
from app.services.audit import AuditDispatcher
from zelus_shared.schemas.common import OrgRole

log = structlog.get_logger()


def _members_query(scope: TenantScope):
    return (
        select(User, Membership)
        .join(Membership, Membership.user_id == User.id)
        .where(scope.where_org(Membership))
    )


def _to_read(user: User, membership: Membership) -> dict:
    return {
        "user_id": user.id,
        "name": user.name,
        "email": user.email,
        "role": membership.role,
        "joined_at": membership.created_at,
    }


async def list_members(scope: TenantScope) -> list[dict]:
    """All members of the org with their org-level role."""
    result = await scope.session.execute(_members_query(scope).order_by(User.name))
    return [_to_read(user, m) for user, m in result.all()]


async def get_member(scope: TenantScope, user_id: uuid.UUID) -> dict:
    result = await scope.session.execute(
        _members_query(scope).where(Membership.user_id == user_id)
    )
    row = result.first()
    if row is None:
        raise NotFound("Member not found")
    return _to_read(*row)


async def _get_membership_or_404(scope: TenantScope, user_id: uuid.UUID) -> Membership:
    result = await scope.session.execute(
        scope.select(Membership).where(Membership.user_id == user_id)
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise NotFound("Member not found")
    return membership


async def update_member_role(
    scope: TenantScope,
    user_id: uuid.UUID,
    role: OrgRole,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Membership:
    """Switch a member between admin and member. Ownership is fixed."""
    membership = await _get_membership_or_404(scope, user_id)
    if role is OrgRole.OWNER:
        raise HTTPException(status_code=400, detail="Ownership cannot be granted")
    if membership.role == OrgRole.OWNER.value:
        raise HTTPException(status_code=409, detail="The owner's role cannot be changed")

    previous = membership.role
    membership.role = role.value
    scope.touch(membership)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="member.role_changed",
        entity_type="membership",
        entity_id=user_id,
        details={"from": previous, "to": role.value},
    )
    log.info("member.role_changed", org_id=str(scope.org_id), user_id=str(user_id), role=role.value)
    return membership


async def remove_member(
    scope: TenantScope,
    user_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> None:
    """Remove a member and their fraction associations in this org."""
    if user_id == actor_id:
        raise HTTPException(status_code=409, detail="You cannot remove yourself")
    membership = await _get_membership_or_404(scope, user_id)
    if membership.role == OrgRole.OWNER.value:
        raise HTTPException(status_code=409, detail="The owner cannot be removed")

    await scope.session.execute(
        delete(UserFraction).where(
            scope.where_org(UserFraction), UserFraction.user_id == user_id
        )
    )
    await scope.delete(membership)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="member.removed",
        entity_type="membership",
        entity_id=user_id,
    )
    log.info("member.removed", org_id=str(scope.org_id), user_id=str(user_id))
