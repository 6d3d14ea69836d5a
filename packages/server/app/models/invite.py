"""Invite model (org and fraction invitations)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TenantScopedMixin, TimestampMixin, UUIDMixin


class Invite(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "invites"

    type: str = Field(nullable=False)  # org | fraction
    fraction_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="fractions.id", ondelete="CASCADE"
    )
    email: str = Field(nullable=False, index=True)
    role: str = Field(nullable=False)  # org_admin | fraction_owner_admin | fraction_member
    token: str = Field(nullable=False, unique=True, index=True)
    status: str = Field(default="pending", nullable=False)  # pending | accepted | expired | revoked
    invited_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
