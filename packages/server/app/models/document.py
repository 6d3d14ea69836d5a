"""Document metadata model."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TenantScopedMixin, TimestampMixin, UUIDMixin


class Document(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "documents"

    uploaded_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    file_name: str = Field(nullable=False)
    file_url: str = Field(nullable=False)
    file_size: int = Field(nullable=False)
    mime_type: str = Field(nullable=False)
    status: str = Field(default="processing", nullable=False)  # processing | ready | error
