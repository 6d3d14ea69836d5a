"""
Authentication and Authorization for Zelus.

Supports:
- Email/Password credentials (bcrypt)
- Session resolution from the signed session cookie (see ``app.core.sessions``)
- Organization resolution: membership lookup + effective role
- Role-based authorization dependencies
- Tenant scoping for data access
"""

from __future__ import annotations

import secrets
import uuid
from typing import Optional

import bcrypt
import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import Settings
from app.core.context import (
    Identity,
    OrgContext,
    can_manage_fraction,
    resolve_effective_role,
)
from app.core.database import get_session
from app.core.errors import Forbidden, NoActiveOrganization, Unauthenticated
from app.core.sessions import SessionStore, resolve_session
from app.core.tenancy import TenantScope
from app.models.fraction import Fraction, UserFraction
from app.models.membership import Membership
from app.models.organization import Organization
from zelus_shared.schemas.common import (
    AssociationStatus,
    EffectiveRole,
    FractionRole,
    OrgRole,
)

log = structlog.get_logger()

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Injected collaborators
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


# ---------------------------------------------------------------------------
# Session resolver
# ---------------------------------------------------------------------------

async def get_identity(
    request: Request,
    session: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> Optional[Identity]:
    """The caller's identity, or None when there is no valid session."""
    return await resolve_session(request, session, store, settings)


async def require_user(
    identity: Optional[Identity] = Depends(get_identity),
) -> Identity:
    """Authenticated caller; anything else redirects to login."""
    if identity is None:
        raise Unauthenticated()
    structlog.contextvars.bind_contextvars(user_id=str(identity.user_id))
    return identity


# ---------------------------------------------------------------------------
# Organization resolver
# ---------------------------------------------------------------------------

async def get_membership(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[Membership]:
    result = await session.execute(
        select(Membership).where(
            Membership.org_id == org_id, Membership.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def approved_fraction_roles(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> list[FractionRole]:
    result = await session.execute(
        select(UserFraction.role).where(
            UserFraction.org_id == org_id,
            UserFraction.user_id == user_id,
            UserFraction.status == AssociationStatus.APPROVED.value,
        )
    )
    return [FractionRole(role) for role in result.scalars().all()]


async def resolve_org_context(
    identity: Identity, session: AsyncSession
) -> OrgContext:
    """Resolve the tenant and effective role for an authenticated caller.

    Raises NoActiveOrganization when the session points nowhere, or at an org
    the user does not (or no longer) belong to.
    """
    org_id = identity.active_org_id
    if org_id is None:
        raise NoActiveOrganization()

    membership = await get_membership(session, org_id, identity.user_id)
    if membership is None:
        log.info("access.membership_missing", org_id=str(org_id))
        raise NoActiveOrganization()

    org = await session.get(Organization, org_id)
    if org is None:
        raise NoActiveOrganization()

    org_role = OrgRole(membership.role)
    if org_role is OrgRole.MEMBER:
        fraction_roles = await approved_fraction_roles(session, org_id, identity.user_id)
    else:
        fraction_roles = []

    return OrgContext(
        user=identity,
        org_id=org_id,
        org_name=org.name,
        org_role=org_role,
        effective_role=resolve_effective_role(org_role, fraction_roles),
    )


async def require_org_member(
    identity: Identity = Depends(require_user),
    session: AsyncSession = Depends(get_session),
) -> OrgContext:
    """Any member of the active organization."""
    ctx = await resolve_org_context(identity, session)
    structlog.contextvars.bind_contextvars(
        org_id=str(ctx.org_id), role=ctx.effective_role.value
    )
    return ctx


async def require_org_admin(
    ctx: OrgContext = Depends(require_org_member),
) -> OrgContext:
    """Requires org_admin (org owner or admin)."""
    if not ctx.is_org_admin:
        raise Forbidden("Organization admin access required")
    return ctx


def require_roles(*roles: EffectiveRole):
    """Dependency factory: effective role must be one of ``roles``."""
    allowed = frozenset(roles)

    async def _check(ctx: OrgContext = Depends(require_org_member)) -> OrgContext:
        if ctx.effective_role not in allowed:
            raise Forbidden()
        return ctx

    return _check


async def get_tenant_scope(
    ctx: OrgContext = Depends(require_org_member),
    session: AsyncSession = Depends(get_session),
) -> TenantScope:
    """Data-access capability pinned to the caller's active organization."""
    return TenantScope.for_context(session, ctx)


# ---------------------------------------------------------------------------
# Fraction-scoped authorization
# ---------------------------------------------------------------------------

async def get_fraction_role(
    scope: TenantScope, user_id: uuid.UUID, fraction_id: uuid.UUID
) -> Optional[FractionRole]:
    """The caller's approved role on one fraction, or None."""
    result = await scope.session.execute(
        select(UserFraction.role).where(
            scope.where_org(UserFraction),
            UserFraction.user_id == user_id,
            UserFraction.fraction_id == fraction_id,
            UserFraction.status == AssociationStatus.APPROVED.value,
        )
    )
    roles = {FractionRole(r) for r in result.scalars().all()}
    if FractionRole.FRACTION_OWNER_ADMIN in roles:
        return FractionRole.FRACTION_OWNER_ADMIN
    if roles:
        return FractionRole.FRACTION_MEMBER
    return None


async def ensure_can_manage_fraction(
    ctx: OrgContext, scope: TenantScope, fraction_id: uuid.UUID
) -> None:
    """Org admins, or the fraction's owner-admin. Raises Forbidden otherwise."""
    if ctx.is_org_admin:
        return
    role = await get_fraction_role(scope, ctx.user_id, fraction_id)
    if not can_manage_fraction(ctx, role):
        raise Forbidden("Fraction management access required")


async def require_fraction_manager(
    fraction_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
) -> OrgContext:
    """Path-param dependency for fraction-scoped management actions."""
    await scope.get_or_404(Fraction, fraction_id, "Fraction")
    await ensure_can_manage_fraction(ctx, scope, fraction_id)
    return ctx
