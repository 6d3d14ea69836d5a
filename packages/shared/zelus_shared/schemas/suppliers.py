"""Supplier and maintenance-record schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, UUID4

from .common import Category


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

class SupplierCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: Category
    contact_name: Optional[str] = Field(default=None, max_length=200)
    contact_phone: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=300)
    address: Optional[str] = Field(default=None, max_length=300)
    notes: Optional[str] = Field(default=None, max_length=2000)


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[Category] = None
    contact_name: Optional[str] = Field(default=None, max_length=200)
    contact_phone: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=300)
    address: Optional[str] = Field(default=None, max_length=300)
    notes: Optional[str] = Field(default=None, max_length=2000)


class SupplierRead(BaseModel):
    id: UUID4
    name: str
    category: Category
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Maintenance records
# ---------------------------------------------------------------------------

class MaintenanceCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=10000)
    supplier_id: Optional[UUID4] = None
    performed_at: datetime
    cost: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class MaintenanceUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=10000)
    supplier_id: Optional[UUID4] = None
    performed_at: Optional[datetime] = None
    cost: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class MaintenanceRead(BaseModel):
    id: UUID4
    title: str
    description: str
    supplier_id: Optional[UUID4] = None
    supplier_name: Optional[str] = None
    performed_at: datetime
    cost: Optional[Decimal] = None
    created_by: UUID4
    created_at: datetime
