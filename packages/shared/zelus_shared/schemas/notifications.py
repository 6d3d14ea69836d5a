"""In-app notification schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, UUID4


class NotificationRead(BaseModel):
    id: UUID4
    type: str
    title: str
    message: str
    data: Optional[Dict[str, str]] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationList(BaseModel):
    data: List[NotificationRead]
    unread: int


class UnreadCount(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int
