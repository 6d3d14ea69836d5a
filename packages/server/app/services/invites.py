"""
Invite service — org and fraction invitations by email token.

Acceptance runs outside any tenant context: the org comes from the invite row,
and the scope for the writes it performs is built from that.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import timedelta
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import Forbidden, NotFound
from app.core.tenancy import TenantScope
from app.models.base import as_utc, utcnow
from app.models.fraction import Fraction, UserFraction
from app.models.invite import Invite
from app.models.membership import Membership
from app.models.user import User
from app.services import notifications as notification_service
from app.services.audit import AuditDispatcher
from app.services.notifications import NotificationType
from zelus_shared.schemas.common import (
    AssociationStatus,
    FractionRole,
    InviteRole,
    InviteStatus,
    InviteType,
    OrgRole,
)

log = structlog.get_logger()

ORG_INVITE_ROLES = frozenset({InviteRole.ORG_ADMIN, InviteRole.FRACTION_MEMBER})
FRACTION_INVITE_ROLES = frozenset({InviteRole.FRACTION_OWNER_ADMIN, InviteRole.FRACTION_MEMBER})


def generate_invite_token() -> str:
    return secrets.token_urlsafe(32)


def invite_url(app_url: str, token: str) -> str:
    return f"{app_url.rstrip('/')}/invite/{token}"


def _send_invite_email(invite: Invite, app_url: str) -> None:
    # Delivery is handled by the mail provider integration; record the intent.
    log.info(
        "invite.email_queued",
        invite_id=str(invite.id),
        type=invite.type,
        url=invite_url(app_url, invite.token),
    )


async def _has_approved_owner_admin(
    scope: TenantScope,
    fraction_id: uuid.UUID,
    exclude_user_id: Optional[uuid.UUID] = None,
) -> bool:
    stmt = scope.select(UserFraction).where(
        UserFraction.fraction_id == fraction_id,
        UserFraction.role == FractionRole.FRACTION_OWNER_ADMIN.value,
        UserFraction.status == AssociationStatus.APPROVED.value,
    )
    if exclude_user_id is not None:
        stmt = stmt.where(UserFraction.user_id != exclude_user_id)
    result = await scope.session.execute(stmt)
    return result.scalars().first() is not None


async def _create(
    scope: TenantScope,
    *,
    type_: InviteType,
    email: str,
    role: InviteRole,
    actor_id: uuid.UUID,
    expire_days: int,
    fraction_id: Optional[uuid.UUID] = None,
) -> Invite:
    invite = scope.add(
        Invite(
            type=type_.value,
            fraction_id=fraction_id,
            email=email.strip().lower(),
            role=role.value,
            token=generate_invite_token(),
            status=InviteStatus.PENDING.value,
            invited_by=actor_id,
            expires_at=utcnow() + timedelta(days=expire_days),
        )
    )
    await scope.flush()
    return invite


async def create_org_invite(
    scope: TenantScope,
    email: str,
    role: InviteRole,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
    *,
    app_url: str,
    expire_days: int = 7,
) -> Invite:
    if role not in ORG_INVITE_ROLES:
        raise HTTPException(status_code=400, detail=f"Role '{role.value}' is not valid for an org invite")

    invite = await _create(
        scope,
        type_=InviteType.ORG,
        email=email,
        role=role,
        actor_id=actor_id,
        expire_days=expire_days,
    )
    audit.record(
        scope,
        user_id=actor_id,
        action="invite.created",
        entity_type="invite",
        entity_id=invite.id,
        details={"email": invite.email, "type": invite.type, "role": invite.role},
    )
    _send_invite_email(invite, app_url)
    return invite


async def create_fraction_invite(
    scope: TenantScope,
    fraction_id: uuid.UUID,
    email: str,
    role: InviteRole,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
    *,
    app_url: str,
    expire_days: int = 7,
) -> Invite:
    """Invite someone straight into a fraction. Acceptance auto-approves."""
    if role not in FRACTION_INVITE_ROLES:
        raise HTTPException(status_code=400, detail=f"Role '{role.value}' is not valid for a fraction invite")
    await scope.get_or_404(Fraction, fraction_id, "Fraction")

    if role is InviteRole.FRACTION_OWNER_ADMIN and await _has_approved_owner_admin(scope, fraction_id):
        raise HTTPException(
            status_code=409,
            detail="This fraction already has an approved owner-admin",
        )

    invite = await _create(
        scope,
        type_=InviteType.FRACTION,
        email=email,
        role=role,
        actor_id=actor_id,
        expire_days=expire_days,
        fraction_id=fraction_id,
    )
    audit.record(
        scope,
        user_id=actor_id,
        action="invite.created",
        entity_type="invite",
        entity_id=invite.id,
        details={
            "email": invite.email,
            "type": invite.type,
            "role": invite.role,
            "fraction_id": fraction_id,
        },
    )
    _send_invite_email(invite, app_url)
    return invite


async def list_invites(
    scope: TenantScope, invited_by: Optional[uuid.UUID] = None
) -> list[Invite]:
    stmt = scope.select(Invite)
    if invited_by is not None:
        stmt = stmt.where(Invite.invited_by == invited_by)
    return await scope.all(stmt.order_by(Invite.created_at.desc()))


async def revoke_invite(
    scope: TenantScope,
    invite_id: uuid.UUID,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Invite:
    invite = await scope.get_or_404(Invite, invite_id, "Invite")
    if invite.status != InviteStatus.PENDING.value:
        raise HTTPException(status_code=409, detail=f"Invite is already {invite.status}")

    invite.status = InviteStatus.REVOKED.value
    scope.touch(invite)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="invite.revoked",
        entity_type="invite",
        entity_id=invite.id,
        details={"email": invite.email, "type": invite.type},
    )
    return invite


# ---------------------------------------------------------------------------
# Acceptance
# ---------------------------------------------------------------------------

async def _ensure_membership(
    scope: TenantScope, user_id: uuid.UUID, role: OrgRole
) -> None:
    result = await scope.session.execute(
        scope.select(Membership).where(Membership.user_id == user_id)
    )
    if result.scalar_one_or_none() is None:
        scope.add(Membership(user_id=user_id, role=role.value))


async def _approve_fraction_link(scope: TenantScope, invite: Invite, user_id: uuid.UUID) -> None:
    result = await scope.session.execute(
        scope.select(UserFraction).where(
            UserFraction.user_id == user_id,
            UserFraction.fraction_id == invite.fraction_id,
        )
    )
    existing = result.scalars().first()
    if existing is None:
        scope.add(
            UserFraction(
                user_id=user_id,
                fraction_id=invite.fraction_id,
                role=invite.role,
                status=AssociationStatus.APPROVED.value,
                invited_by=invite.invited_by,
                approved_by=invite.invited_by,
            )
        )
    elif existing.status != AssociationStatus.APPROVED.value:
        existing.status = AssociationStatus.APPROVED.value
        existing.role = invite.role
        existing.approved_by = invite.invited_by
        scope.touch(existing)


async def accept_invite(
    token: str,
    user_id: uuid.UUID,
    user_email: str,
    session: AsyncSession,
    audit: AuditDispatcher,
) -> Invite:
    """Accept a pending invite for the signed-in user.

    Unknown or already-used tokens are 404; an expired invite is marked
    ``expired`` and answered with 410.
    """
    result = await session.execute(
        select(Invite).where(
            Invite.token == token, Invite.status == InviteStatus.PENDING.value
        )
    )
    invite = result.scalar_one_or_none()
    if invite is None:
        raise NotFound("Invite not found or already used")

    if as_utc(invite.expires_at) < utcnow():
        invite.status = InviteStatus.EXPIRED.value
        session.add(invite)
        await session.commit()
        log.info("invite.expired", invite_id=str(invite.id))
        raise HTTPException(status_code=410, detail="Invite has expired")

    if invite.email.lower() != user_email.strip().lower():
        raise Forbidden("This invite was sent to a different email address")

    scope = TenantScope(session, invite.org_id)
    if invite.type == InviteType.ORG.value:
        role = OrgRole.ADMIN if invite.role == InviteRole.ORG_ADMIN.value else OrgRole.MEMBER
        await _ensure_membership(scope, user_id, role)
    else:
        # another owner-admin may have been approved since the invite was sent
        owner_admin = invite.role == InviteRole.FRACTION_OWNER_ADMIN.value
        if owner_admin and await _has_approved_owner_admin(
            scope, invite.fraction_id, exclude_user_id=user_id
        ):
            raise HTTPException(
                status_code=409,
                detail="This fraction already has an approved owner-admin",
            )
        await _ensure_membership(scope, user_id, OrgRole.MEMBER)
        await _approve_fraction_link(scope, invite, user_id)

    invite.status = InviteStatus.ACCEPTED.value
    scope.touch(invite)
    await scope.flush()

    audit.record(
        scope,
        user_id=user_id,
        action="invite.accepted",
        entity_type="invite",
        entity_id=invite.id,
        details={"type": invite.type, "email": invite.email},
    )
    if invite.invited_by != user_id:
        acceptor = await session.get(User, user_id)
        target = "the condominium" if invite.type == InviteType.ORG.value else "a fraction"
        notification_service.notify(
            scope,
            invite.invited_by,
            NotificationType.INVITE_ACCEPTED,
            "Invite accepted",
            f"{acceptor.name if acceptor else invite.email} accepted your invite to {target}.",
            {"invite_id": invite.id, "type": invite.type},
        )
    log.info("invite.accepted", invite_id=str(invite.id), org_id=str(invite.org_id))
    return invite
