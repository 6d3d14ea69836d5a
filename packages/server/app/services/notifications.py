"""
Notification service: per-user inbox inside the active organization.

Notifications are written in the same transaction as the change that causes
them, so a rolled-back request notifies nobody.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import func, update
from sqlmodel import select

from app.core.errors import NotFound
from app.core.tenancy import TenantScope
from app.models.base import utcnow
from app.models.membership import Membership
from app.models.notification import Notification
from zelus_shared.schemas.common import ORG_ADMIN_ROLES

log = structlog.get_logger()

INBOX_LIMIT = 50


class NotificationType(str, Enum):
    ASSOCIATION_REQUESTED = "association_requested"
    ASSOCIATION_APPROVED = "association_approved"
    ASSOCIATION_REJECTED = "association_rejected"
    ASSOCIATION_REMOVED = "association_removed"
    ASSOCIATION_ROLE_CHANGED = "association_role_changed"
    INVITE_ACCEPTED = "invite_accepted"
    TICKET_UPDATE = "ticket_update"


def notify(
    scope: TenantScope,
    user_id: uuid.UUID,
    type_: NotificationType,
    title: str,
    message: str,
    data: Optional[dict[str, Any]] = None,
) -> Notification:
    return scope.add(
        Notification(
            user_id=user_id,
            type=type_.value,
            title=title,
            message=message,
            data={k: str(v) for k, v in (data or {}).items()} or None,
        )
    )


def notify_many(
    scope: TenantScope,
    user_ids: Iterable[uuid.UUID],
    type_: NotificationType,
    title: str,
    message: str,
    data: Optional[dict[str, Any]] = None,
) -> None:
    for user_id in user_ids:
        notify(scope, user_id, type_, title, message, data)


async def org_admin_ids(scope: TenantScope) -> list[uuid.UUID]:
    """Owners and admins of the scope's organization."""
    result = await scope.session.execute(
        select(Membership.user_id).where(
            scope.where_org(Membership),
            Membership.role.in_([role.value for role in ORG_ADMIN_ROLES]),
        )
    )
    return list(result.scalars().all())


def _mine(scope: TenantScope, user_id: uuid.UUID):
    return scope.where_org(Notification), Notification.user_id == user_id


async def list_notifications(scope: TenantScope, user_id: uuid.UUID) -> list[Notification]:
    """The caller's newest notifications, read or not."""
    stmt = (
        select(Notification)
        .where(*_mine(scope, user_id))
        .order_by(Notification.created_at.desc())
        .limit(INBOX_LIMIT)
    )
    return await scope.all(stmt)


async def unread_count(scope: TenantScope, user_id: uuid.UUID) -> int:
    result = await scope.session.execute(
        select(func.count())
        .select_from(Notification)
        .where(*_mine(scope, user_id), Notification.read_at.is_(None))
    )
    return result.scalar_one()


async def mark_read(
    scope: TenantScope, notification_id: uuid.UUID, user_id: uuid.UUID
) -> Notification:
    notification = await scope.get(Notification, notification_id)
    # someone else's notification looks exactly like a missing one
    if notification is None or notification.user_id != user_id:
        raise NotFound("Notification not found")
    if notification.read_at is None:
        notification.read_at = utcnow()
        scope.touch(notification)
        await scope.flush()
    return notification


async def mark_all_read(scope: TenantScope, user_id: uuid.UUID) -> int:
    result = await scope.session.execute(
        update(Notification)
        .where(*_mine(scope, user_id), Notification.read_at.is_(None))
        .values(read_at=utcnow())
    )
    log.info("notifications.marked_read", user_id=str(user_id), count=result.rowcount)
    return result.rowcount
