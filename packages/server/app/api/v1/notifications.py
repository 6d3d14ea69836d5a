"""
Notification inbox for the signed-in user in the active org.

GET    /api/v1/notifications                    — Newest 50 plus the unread count
GET    /api/v1/notifications/unread-count       — Unread count only (badge polling)
POST   /api/v1/notifications/{id}/read          — Mark one as read
POST   /api/v1/notifications/read-all           — Mark everything as read
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from app.core.auth import get_tenant_scope, require_org_member
from app.core.context import OrgContext
from app.core.tenancy import TenantScope
from app.services import notifications as notification_service
from zelus_shared.schemas.notifications import (
    MarkAllReadResponse,
    NotificationList,
    NotificationRead,
    UnreadCount,
)

router = APIRouter()


@router.get("", response_model=NotificationList)
async def list_notifications(
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    items = await notification_service.list_notifications(scope, ctx.user_id)
    unread = await notification_service.unread_count(scope, ctx.user_id)
    return NotificationList(
        data=[NotificationRead.model_validate(n) for n in items], unread=unread
    )


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return UnreadCount(unread=await notification_service.unread_count(scope, ctx.user_id))


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    updated = await notification_service.mark_all_read(scope, ctx.user_id)
    return MarkAllReadResponse(updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await notification_service.mark_read(scope, notification_id, ctx.user_id)
