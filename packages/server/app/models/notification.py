"""In-app notification model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TenantScopedMixin, TimestampMixin, UUIDMixin


class Notification(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "notifications"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    type: str = Field(nullable=False)  # association_requested | ticket_update | ...
    title: str = Field(nullable=False)
    message: str = Field(nullable=False)
    data: Optional[dict] = Field(default=None, sa_type=sa.JSON)
    read_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
