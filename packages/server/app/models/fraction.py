"""Fraction (unit) and user-fraction association models."""

from typing import Optional
import uuid

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .base import TenantScopedMixin, TimestampMixin, UUIDMixin


class Fraction(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "fractions"
    __table_args__ = (UniqueConstraint("org_id", "label", name="fractions_org_id_label_key"),)

    label: str = Field(nullable=False)
    description: Optional[str] = None


class UserFraction(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "user_fractions"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    fraction_id: uuid.UUID = Field(foreign_key="fractions.id", nullable=False, index=True)
    role: str = Field(nullable=False)  # fraction_owner_admin | fraction_member
    status: str = Field(default="pending", nullable=False)  # pending | approved | rejected
    invited_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    approved_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
