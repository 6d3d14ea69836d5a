"""Supplier and maintenance-record models."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TenantScopedMixin, TimestampMixin, UUIDMixin


class Supplier(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "suppliers"

    name: str = Field(nullable=False)
    category: str = Field(nullable=False)
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class MaintenanceRecord(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "maintenance_records"

    supplier_id: Optional[uuid.UUID] = Field(default=None, foreign_key="suppliers.id", index=True)
    title: str = Field(nullable=False)
    description: str = Field(default="", nullable=False)
    performed_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    cost: Optional[Decimal] = Field(default=None, sa_type=sa.Numeric(12, 2))
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
