"""Ticket schemas: CRUD, status changes, comments and timeline."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, UUID4, field_validator

from .common import Category, TicketPriority, TicketStatus


class TicketScope(str, Enum):
    ALL = "all"
    MINE = "mine"
    PRIVATE = "private"


class TicketCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=10000)
    category: Optional[Category] = None
    priority: Optional[TicketPriority] = None
    fraction_id: Optional[UUID4] = None
    private: bool = False


class TicketUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=10000)
    category: Optional[Category] = None
    priority: Optional[TicketPriority] = None
    fraction_id: Optional[UUID4] = None
    private: Optional[bool] = None

    @field_validator("title", "description", "private")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not cleared")
        return v


class TicketStatusChange(BaseModel):
    status: TicketStatus


class TicketRead(BaseModel):
    id: UUID4
    title: str
    description: str
    status: TicketStatus
    priority: Optional[TicketPriority] = None
    category: Optional[Category] = None
    private: bool
    fraction_id: Optional[UUID4] = None
    created_by: UUID4
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class CommentRead(BaseModel):
    id: UUID4
    ticket_id: UUID4
    user_id: UUID4
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TimelineEntry(BaseModel):
    kind: str  # comment | status_change
    user_id: UUID4
    created_at: datetime
    content: Optional[str] = None
    from_status: Optional[TicketStatus] = None
    to_status: Optional[TicketStatus] = None


class TicketTimeline(BaseModel):
    data: List[TimelineEntry]
