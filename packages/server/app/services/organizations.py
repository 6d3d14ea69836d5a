"""
Organization service — onboarding, org settings, invite links and joining.
"""

from __future__ import annotations

import re
import secrets
import unicodedata
import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFound
from app.core.tenancy import TenantScope
from app.models.membership import Membership
from app.models.organization import Organization
from app.services.audit import AuditDispatcher
from zelus_shared.schemas.common import OrgRole
from zelus_shared.schemas.organizations import OrgCreateRequest, OrgUpdateRequest

log = structlog.get_logger()


def generate_slug(name: str) -> str:
    """URL-safe slug from the org name plus a random suffix."""
    normalized = unicodedata.normalize("NFD", name.lower())
    ascii_only = "".join(c for c in normalized if not unicodedata.combining(c))
    base = re.sub(r"[^a-z0-9]+", "-", ascii_only).strip("-") or "org"
    return f"{base}-{uuid.uuid4().hex[:8]}"


def generate_invite_code() -> str:
    return secrets.token_urlsafe(9)


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[tuple[Organization, str]]:
    """All orgs a user belongs to with their role, oldest membership first."""
    result = await session.execute(
        select(Organization, Membership.role)
        .join(Membership, Membership.org_id == Organization.id)
        .where(Membership.user_id == user_id)
        .order_by(Membership.created_at, Organization.name)
    )
    return [(org, role) for org, role in result.all()]


async def default_org_id(user_id: uuid.UUID, session: AsyncSession) -> Optional[uuid.UUID]:
    """Org a fresh session should point at: the user's oldest membership."""
    result = await session.execute(
        select(Membership.org_id)
        .where(Membership.user_id == user_id)
        .order_by(Membership.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def is_member(session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    result = await session.execute(
        select(Membership.user_id).where(
            Membership.org_id == org_id, Membership.user_id == user_id
        )
    )
    return result.scalar_one_or_none() is not None


async def create_org(
    req: OrgCreateRequest,
    creator_id: uuid.UUID,
    session: AsyncSession,
    audit: AuditDispatcher,
) -> Organization:
    """Create a condominium and make the creator its owner."""
    org = Organization(
        name=req.name.strip(),
        slug=generate_slug(req.name),
        city=req.city.strip(),
        total_fractions=req.total_fractions,
        notes=req.notes,
    )
    session.add(org)
    await session.flush()

    session.add(Membership(user_id=creator_id, org_id=org.id, role=OrgRole.OWNER.value))
    await session.flush()

    audit.record(
        TenantScope(session, org.id),
        user_id=creator_id,
        action="org.created",
        entity_type="organization",
        entity_id=org.id,
        details={"name": org.name, "slug": org.slug},
    )
    log.info("org.created", org_id=str(org.id), slug=org.slug, creator=str(creator_id))
    return org


async def get_current_org(scope: TenantScope) -> Organization:
    org = await scope.session.get(Organization, scope.org_id)
    if org is None:
        raise NotFound("Organization not found")
    return org


async def update_org(
    scope: TenantScope,
    req: OrgUpdateRequest,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Organization:
    """Update org profile fields (admin)."""
    org = await get_current_org(scope)
    changes = req.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(org, key, value)
    scope.session.add(org)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="org.updated",
        entity_type="organization",
        entity_id=org.id,
        details=changes,
    )
    log.info("org.updated", org_id=str(org.id), fields=sorted(changes))
    return org


async def set_invite_link(
    scope: TenantScope,
    action: str,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Organization:
    """enable | disable | regenerate the org's shareable join code."""
    org = await get_current_org(scope)
    if action == "enable":
        org.invite_enabled = True
        if not org.invite_code:
            org.invite_code = generate_invite_code()
    elif action == "disable":
        org.invite_enabled = False
    elif action == "regenerate":
        org.invite_code = generate_invite_code()
    else:
        raise HTTPException(status_code=400, detail=f"Unknown invite-link action '{action}'")

    scope.session.add(org)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action=f"invite_link.{action}",
        entity_type="organization",
        entity_id=org.id,
    )
    return org


async def get_org_by_invite_code(code: str, session: AsyncSession) -> Optional[Organization]:
    """The org behind an enabled join code, or None."""
    result = await session.execute(
        select(Organization).where(
            Organization.invite_code == code,
            Organization.invite_enabled.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def join_by_code(
    code: str,
    user_id: uuid.UUID,
    session: AsyncSession,
    audit: AuditDispatcher,
) -> tuple[Organization, bool]:
    """Join via invite code. Returns (org, already_member)."""
    org = await get_org_by_invite_code(code, session)
    if org is None:
        raise NotFound("Invite link is invalid or disabled")

    if await is_member(session, org.id, user_id):
        return org, True

    session.add(Membership(user_id=user_id, org_id=org.id, role=OrgRole.MEMBER.value))
    await session.flush()

    audit.record(
        TenantScope(session, org.id),
        user_id=user_id,
        action="member.joined",
        entity_type="membership",
        entity_id=user_id,
        details={"via": "invite_code"},
    )
    log.info("org.joined", org_id=str(org.id), user_id=str(user_id))
    return org, False
