"""
Request-scoped identity and organization context.

Both are frozen: handlers can read them but never rebind the tenant or role
they were resolved with.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from zelus_shared.schemas.common import (
    ORG_ADMIN_ROLES,
    EffectiveRole,
    FractionRole,
    OrgRole,
)


@dataclass(frozen=True)
class Identity:
    """An authenticated user bound to one session."""

    user_id: uuid.UUID
    name: str
    email: str
    session_id: str
    active_org_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class OrgContext:
    """Resolved tenant context for an org-scoped request."""

    user: Identity
    org_id: uuid.UUID
    org_name: str
    org_role: OrgRole
    effective_role: EffectiveRole

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.user_id

    @property
    def is_org_admin(self) -> bool:
        return self.effective_role is EffectiveRole.ORG_ADMIN


def resolve_effective_role(
    org_role: OrgRole, approved_fraction_roles: Iterable[FractionRole] = ()
) -> EffectiveRole:
    """Collapse org-level and fraction-level roles into one effective role.

    Org owners and admins are org_admin unconditionally. Everyone else is
    fraction_owner_admin when any approved association carries that role,
    and fraction_member otherwise (including members with no fraction yet).
    """
    if org_role in ORG_ADMIN_ROLES:
        return EffectiveRole.ORG_ADMIN
    if FractionRole.FRACTION_OWNER_ADMIN in set(approved_fraction_roles):
        return EffectiveRole.FRACTION_OWNER_ADMIN
    return EffectiveRole.FRACTION_MEMBER


def can_manage_fraction(ctx: OrgContext, fraction_role: Optional[FractionRole]) -> bool:
    """Fraction-scoped management: org admins, or that fraction's owner-admin."""
    if ctx.is_org_admin:
        return True
    return fraction_role is FractionRole.FRACTION_OWNER_ADMIN
