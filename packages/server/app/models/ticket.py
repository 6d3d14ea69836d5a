"""Ticket, comment and status-event models."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TenantScopedMixin, TimestampMixin, UUIDMixin


class Ticket(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tickets"

    title: str = Field(nullable=False)
    description: str = Field(default="", nullable=False)
    category: Optional[str] = None
    priority: Optional[str] = None  # urgent | high | medium | low
    status: str = Field(default="open", nullable=False)  # open | in_progress | resolved | closed
    private: bool = Field(default=False, nullable=False)
    fraction_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="fractions.id", ondelete="SET NULL", index=True
    )
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)


class TicketComment(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "ticket_comments"

    ticket_id: uuid.UUID = Field(foreign_key="tickets.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    content: str = Field(nullable=False)


class TicketEvent(UUIDMixin, TenantScopedMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "ticket_events"

    ticket_id: uuid.UUID = Field(foreign_key="tickets.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    from_status: str = Field(nullable=False)
    to_status: str = Field(nullable=False)
