"""Audit log model (append-only)."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TenantScopedMixin, TimestampMixin, UUIDMixin


class AuditLog(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "audit_logs"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    action: str = Field(nullable=False, index=True)  # e.g. fraction.created
    entity_type: str = Field(nullable=False)
    entity_id: str = Field(nullable=False)
    details: Optional[dict] = Field(default=None, sa_type=sa.JSON)
