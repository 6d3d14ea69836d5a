"""
Ticket endpoints: CRUD, status changes, comments, timeline.

Statuses: open → in_progress → resolved → closed (any move allowed, each one
recorded as a timeline event).
- Private tickets are visible only to their creator and org admins.
- Field edits: the creator or an org admin.
- Status changes: org admins, or the owner-admin of the ticket's fraction.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import ensure_can_manage_fraction, get_tenant_scope, require_org_member
from app.core.context import OrgContext
from app.core.errors import Forbidden
from app.core.tenancy import TenantScope
from app.services import tickets as ticket_service
from app.services.audit import AuditDispatcher, get_audit
from zelus_shared.schemas.common import Category, TicketPriority, TicketStatus
from zelus_shared.schemas.tickets import (
    CommentCreate,
    CommentRead,
    TicketCreate,
    TicketRead,
    TicketScope,
    TicketStatusChange,
    TicketTimeline,
    TicketUpdate,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Ticket CRUD
# ---------------------------------------------------------------------------

@router.get("", response_model=List[TicketRead])
async def list_tickets(
    status: Optional[TicketStatus] = None,
    priority: Optional[TicketPriority] = None,
    category: Optional[Category] = None,
    fraction_id: Optional[uuid.UUID] = None,
    view: TicketScope = Query(TicketScope.ALL, alias="scope"),
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    """List tickets the caller can see, with optional filters."""
    return await ticket_service.list_tickets(
        scope,
        ctx,
        status=status,
        priority=priority,
        category=category,
        fraction_id=fraction_id,
        view=view,
    )


@router.post("", response_model=TicketRead, status_code=201)
async def create_ticket(
    body: TicketCreate,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    return await ticket_service.create_ticket(scope, body, ctx.user_id, audit)


@router.get("/{ticket_id}", response_model=TicketRead)
async def get_ticket(
    ticket_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    return await ticket_service.get_visible_ticket(scope, ctx, ticket_id)


@router.patch("/{ticket_id}", response_model=TicketRead)
async def update_ticket(
    ticket_id: uuid.UUID,
    body: TicketUpdate,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Edit ticket fields (creator or org admin)."""
    ticket = await ticket_service.get_visible_ticket(scope, ctx, ticket_id)
    if ticket.created_by != ctx.user_id and not ctx.is_org_admin:
        raise Forbidden("Only the creator or an admin can edit this ticket")
    return await ticket_service.update_ticket(scope, ticket, body, ctx.user_id, audit)


@router.post("/{ticket_id}/status", response_model=TicketRead)
async def change_ticket_status(
    ticket_id: uuid.UUID,
    body: TicketStatusChange,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Move a ticket to a new status."""
    ticket = await ticket_service.get_visible_ticket(scope, ctx, ticket_id)
    if ticket.fraction_id is not None:
        await ensure_can_manage_fraction(ctx, scope, ticket.fraction_id)
    elif not ctx.is_org_admin:
        raise Forbidden("Organization admin access required")
    return await ticket_service.change_status(scope, ticket, body.status, ctx.user_id, audit)


# ---------------------------------------------------------------------------
# Comments & timeline
# ---------------------------------------------------------------------------

@router.get("/{ticket_id}/comments", response_model=List[CommentRead])
async def list_comments(
    ticket_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    ticket = await ticket_service.get_visible_ticket(scope, ctx, ticket_id)
    return await ticket_service.list_comments(scope, ticket)


@router.post("/{ticket_id}/comments", response_model=CommentRead, status_code=201)
async def add_comment(
    ticket_id: uuid.UUID,
    body: CommentCreate,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
    audit: AuditDispatcher = Depends(get_audit),
):
    """Comment on a ticket the caller can see."""
    ticket = await ticket_service.get_visible_ticket(scope, ctx, ticket_id)
    return await ticket_service.add_comment(scope, ticket, body.content, ctx.user_id, audit)


@router.get("/{ticket_id}/timeline", response_model=TicketTimeline)
async def get_timeline(
    ticket_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_member),
    scope: TenantScope = Depends(get_tenant_scope),
):
    ticket = await ticket_service.get_visible_ticket(scope, ctx, ticket_id)
    return TicketTimeline(data=await ticket_service.get_timeline(scope, ticket))
