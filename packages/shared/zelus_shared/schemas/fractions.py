"""Fraction (unit) and fraction-association schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, UUID4, field_validator

from .common import AssociationStatus, FractionRole


# ---------------------------------------------------------------------------
# Fractions
# ---------------------------------------------------------------------------

class FractionCreate(BaseModel):
    label: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("label")
    @classmethod
    def strip_label(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("label must not be blank")
        return v


class FractionUpdate(BaseModel):
    label: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)


class FractionBulkCreate(BaseModel):
    labels: List[str] = Field(min_length=1, max_length=500)


class FractionRead(BaseModel):
    id: UUID4
    label: str
    description: Optional[str] = None
    member_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class FractionBulkResult(BaseModel):
    created: List[FractionRead]
    skipped: List[str]


# ---------------------------------------------------------------------------
# Associations (user <-> fraction)
# ---------------------------------------------------------------------------

class AssociationRequest(BaseModel):
    role: FractionRole = FractionRole.FRACTION_MEMBER


class AssociationRead(BaseModel):
    id: UUID4
    user_id: UUID4
    fraction_id: UUID4
    fraction_label: Optional[str] = None
    user_name: Optional[str] = None
    role: FractionRole
    status: AssociationStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class AssociationUpdate(BaseModel):
    role: FractionRole


class BulkAssignUsers(BaseModel):
    user_ids: List[UUID4] = Field(min_length=1, max_length=500)


class BulkAssignFractions(BaseModel):
    fraction_ids: List[UUID4] = Field(min_length=1, max_length=500)


class BulkAssignResult(BaseModel):
    created: int
    skipped: int
