"""
Ticket service — issue tracking with comments and a status timeline.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import or_

from app.core.context import OrgContext
from app.core.errors import NotFound
from app.core.tenancy import TenantScope
from app.models.base import as_utc
from app.models.fraction import Fraction
from app.models.ticket import Ticket, TicketComment, TicketEvent
from app.services import notifications as notification_service
from app.services.audit import AuditDispatcher
from app.services.notifications import NotificationType
from zelus_shared.schemas.common import Category, TicketPriority, TicketStatus
from zelus_shared.schemas.tickets import TicketCreate, TicketScope, TicketUpdate

log = structlog.get_logger()


def _visible_to(stmt, viewer: OrgContext):
    """Private tickets are only visible to their creator and org admins."""
    if viewer.is_org_admin:
        return stmt
    return stmt.where(or_(Ticket.private.is_(False), Ticket.created_by == viewer.user_id))


async def list_tickets(
    scope: TenantScope,
    viewer: OrgContext,
    *,
    status: Optional[TicketStatus] = None,
    priority: Optional[TicketPriority] = None,
    category: Optional[Category] = None,
    fraction_id: Optional[uuid.UUID] = None,
    view: TicketScope = TicketScope.ALL,
) -> list[Ticket]:
    stmt = _visible_to(scope.select(Ticket), viewer)

    if status is not None:
        stmt = stmt.where(Ticket.status == status.value)
    if priority is not None:
        stmt = stmt.where(Ticket.priority == priority.value)
    if category is not None:
        stmt = stmt.where(Ticket.category == category.value)
    if fraction_id is not None:
        stmt = stmt.where(Ticket.fraction_id == fraction_id)

    if view is TicketScope.MINE:
        stmt = stmt.where(Ticket.created_by == viewer.user_id)
    elif view is TicketScope.PRIVATE:
        stmt = stmt.where(Ticket.private.is_(True))

    return await scope.all(stmt.order_by(Ticket.created_at.desc()))


async def get_visible_ticket(
    scope: TenantScope, viewer: OrgContext, ticket_id: uuid.UUID
) -> Ticket:
    """Fetch a ticket the viewer may see; hidden private tickets are 404."""
    result = await scope.session.execute(
        _visible_to(scope.select(Ticket).where(Ticket.id == ticket_id), viewer)
    )
    ticket = result.scalar_one_or_none()
    if ticket is None:
        raise NotFound("Ticket not found")
    return ticket


async def create_ticket(
    scope: TenantScope,
    data: TicketCreate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Ticket:
    if data.fraction_id is not None:
        await scope.get_or_404(Fraction, data.fraction_id, "Fraction")

    ticket = scope.add(
        Ticket(
            title=data.title.strip(),
            description=data.description,
            category=data.category.value if data.category else None,
            priority=data.priority.value if data.priority else None,
            status=TicketStatus.OPEN.value,
            private=data.private,
            fraction_id=data.fraction_id,
            created_by=actor_id,
        )
    )
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="ticket.created",
        entity_type="ticket",
        entity_id=ticket.id,
        details={"title": ticket.title, "private": ticket.private},
    )
    log.info("ticket.created", ticket_id=str(ticket.id), private=ticket.private)
    return ticket


async def update_ticket(
    scope: TenantScope,
    ticket: Ticket,
    data: TicketUpdate,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Ticket:
    """Apply field edits. Status moves through ``change_status`` only."""
    changes = data.model_dump(exclude_unset=True)
    if changes.get("fraction_id") is not None:
        await scope.get_or_404(Fraction, changes["fraction_id"], "Fraction")
    if "title" in changes:
        changes["title"] = changes["title"].strip()

    for key, value in changes.items():
        setattr(ticket, key, value.value if hasattr(value, "value") else value)
    scope.touch(ticket)
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="ticket.updated",
        entity_type="ticket",
        entity_id=ticket.id,
        details={"fields": ",".join(sorted(changes))},
    )
    return ticket


async def change_status(
    scope: TenantScope,
    ticket: Ticket,
    new_status: TicketStatus,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> Ticket:
    """Move a ticket to ``new_status`` and append a timeline event.

    Setting the current status again is a no-op.
    """
    previous = ticket.status
    if previous == new_status.value:
        return ticket

    ticket.status = new_status.value
    scope.touch(ticket)
    scope.add(
        TicketEvent(
            ticket_id=ticket.id,
            user_id=actor_id,
            from_status=previous,
            to_status=new_status.value,
        )
    )
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="ticket.status_changed",
        entity_type="ticket",
        entity_id=ticket.id,
        details={"from": previous, "to": new_status.value},
    )
    if ticket.created_by != actor_id:
        notification_service.notify(
            scope,
            ticket.created_by,
            NotificationType.TICKET_UPDATE,
            f"Ticket updated: {ticket.title}",
            f'Status changed to "{new_status.value}".',
            {"ticket_id": ticket.id},
        )
    log.info("ticket.status_changed", ticket_id=str(ticket.id), to=new_status.value)
    return ticket


# ---------------------------------------------------------------------------
# Comments & timeline
# ---------------------------------------------------------------------------

async def add_comment(
    scope: TenantScope,
    ticket: Ticket,
    content: str,
    actor_id: uuid.UUID,
    audit: AuditDispatcher,
) -> TicketComment:
    comment = scope.add(
        TicketComment(ticket_id=ticket.id, user_id=actor_id, content=content.strip())
    )
    await scope.flush()

    audit.record(
        scope,
        user_id=actor_id,
        action="ticket.commented",
        entity_type="ticket",
        entity_id=ticket.id,
        details={"comment_id": comment.id},
    )
    if ticket.created_by != actor_id:
        notification_service.notify(
            scope,
            ticket.created_by,
            NotificationType.TICKET_UPDATE,
            f"New comment: {ticket.title}",
            comment.content[:200],
            {"ticket_id": ticket.id},
        )
    return comment


async def list_comments(scope: TenantScope, ticket: Ticket) -> list[TicketComment]:
    return await scope.all(
        scope.select(TicketComment)
        .where(TicketComment.ticket_id == ticket.id)
        .order_by(TicketComment.created_at)
    )


async def get_timeline(scope: TenantScope, ticket: Ticket) -> list[dict]:
    """Comments and status changes interleaved, oldest first."""
    comments = await list_comments(scope, ticket)
    events = await scope.all(
        scope.select(TicketEvent).where(TicketEvent.ticket_id == ticket.id)
    )

    entries = [
        {
            "kind": "comment",
            "user_id": c.user_id,
            "created_at": as_utc(c.created_at),
            "content": c.content,
        }
        for c in comments
    ]
    entries += [
        {
            "kind": "status_change",
            "user_id": e.user_id,
            "created_at": as_utc(e.created_at),
            "from_status": e.from_status,
            "to_status": e.to_status,
        }
        for e in events
    ]
    entries.sort(key=lambda entry: entry["created_at"])
    return entries
