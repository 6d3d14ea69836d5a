"""Organization (condominium) model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)
    slug: str = Field(unique=True, nullable=False, index=True)
    city: Optional[str] = None
    total_fractions: Optional[int] = None
    notes: Optional[str] = None
    language: str = Field(default="pt-PT", nullable=False)
    timezone: str = Field(default="Europe/Lisbon", nullable=False)
    invite_code: Optional[str] = Field(default=None, unique=True, index=True)
    invite_enabled: bool = Field(default=False, nullable=False)
