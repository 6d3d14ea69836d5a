"""
Audit log service — fire-and-forget event recording and admin listing.

Writes run after the request commits, on their own task and DB session, so a
slow or failing audit insert never delays or fails the request that triggered it.
"""

from __future__ import annotations

import asyncio
import math
import uuid
from typing import Any, Optional

import structlog
from fastapi import Request
from sqlalchemy import func
from sqlmodel import select

from app.core.database import Database, on_commit
from app.core.tenancy import TenantScope
from app.models.audit_log import AuditLog

log = structlog.get_logger()


class AuditDispatcher:
    """Schedules audit-log inserts without awaiting them."""

    def __init__(self, db: Database):
        self._db = db
        self._pending: set[asyncio.Task] = set()

    def record(
        self,
        scope: TenantScope,
        *,
        user_id: uuid.UUID,
        action: str,
        entity_type: str,
        entity_id: Any,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Queue one audit event for the scope's organization.

        The write is dispatched once the caller's transaction commits; a
        rolled-back request leaves no trail.
        """
        entry = AuditLog(
            org_id=scope.org_id,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            details=_jsonable(details),
        )
        on_commit(scope.session, lambda: self._dispatch(entry))

    def _dispatch(self, entry: AuditLog) -> None:
        task = asyncio.create_task(self._write(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, entry: AuditLog) -> None:
        try:
            async with self._db.session() as session:
                session.add(entry)
        except Exception:
            log.exception(
                "audit.write_failed",
                action=entry.action,
                org_id=str(entry.org_id),
                entity_id=entry.entity_id,
            )

    async def drain(self) -> None:
        """Wait for in-flight writes (shutdown and tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _jsonable(details: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if details is None:
        return None
    out: dict[str, Any] = {}
    for key, value in details.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            out[key] = value
        elif hasattr(value, "value"):  # Enum
            out[key] = value.value
        else:
            out[key] = str(value)
    return out


def get_audit(request: Request) -> AuditDispatcher:
    return request.app.state.audit


async def list_audit_logs(
    scope: TenantScope, *, page: int = 1, per_page: int = 50
) -> tuple[list[AuditLog], int]:
    """Newest-first page of the organization's audit trail, plus total count."""
    total_result = await scope.session.execute(
        select(func.count()).select_from(AuditLog).where(scope.where_org(AuditLog))
    )
    total = total_result.scalar_one()

    stmt = (
        scope.select(AuditLog)
        .order_by(AuditLog.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return await scope.all(stmt), total


def total_pages(total: int, per_page: int) -> int:
    return max(1, math.ceil(total / per_page))
