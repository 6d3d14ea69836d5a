"""
Tenant-scoped data access.

A ``TenantScope`` is the capability services use to touch tenant data. It
cannot be built without an org id, and every statement it produces carries
the ``org_id`` predicate, so a forgotten filter cannot leak rows across
organizations.
"""

from __future__ import annotations

import uuid
from typing import Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select
from sqlmodel.sql.expression import SelectOfScalar

from app.core.context import OrgContext
from app.core.errors import NotFound

M = TypeVar("M", bound=SQLModel)


def _require_tenant_model(model: type[SQLModel]) -> None:
    if "org_id" not in model.model_fields:
        raise TypeError(f"{model.__name__} is not tenant-scoped (no org_id column)")


class TenantScope:
    """Database access pinned to one organization."""

    __slots__ = ("_session", "_org_id")

    def __init__(self, session: AsyncSession, org_id: uuid.UUID):
        if org_id is None:
            raise ValueError("TenantScope requires an org_id")
        self._session = session
        self._org_id = org_id

    @classmethod
    def for_context(cls, session: AsyncSession, ctx: OrgContext) -> "TenantScope":
        return cls(session, ctx.org_id)

    @property
    def org_id(self) -> uuid.UUID:
        return self._org_id

    @property
    def session(self) -> AsyncSession:
        return self._session

    def select(self, model: type[M]) -> SelectOfScalar[M]:
        """``select(model)`` already filtered to this organization."""
        _require_tenant_model(model)
        return select(model).where(model.org_id == self._org_id)

    def where_org(self, model: type[SQLModel]):
        """The bare ``org_id`` predicate, for joins and aggregate queries."""
        _require_tenant_model(model)
        return model.org_id == self._org_id

    async def get(self, model: type[M], obj_id: uuid.UUID) -> Optional[M]:
        """Fetch by primary key; rows owned by another org come back as None."""
        result = await self._session.execute(
            self.select(model).where(model.id == obj_id)
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, model: type[M], obj_id: uuid.UUID, name: str | None = None) -> M:
        obj = await self.get(model, obj_id)
        if obj is None:
            raise NotFound(f"{name or model.__name__} not found")
        return obj

    async def all(self, stmt) -> list:
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def add(self, obj: M) -> M:
        """Stage a new row, stamping this scope's org id over anything supplied."""
        _require_tenant_model(type(obj))
        obj.org_id = self._org_id
        self._session.add(obj)
        return obj

    def touch(self, obj: M) -> M:
        """Stage an update to a row already loaded through this scope."""
        self._check_owned(obj)
        self._session.add(obj)
        return obj

    async def delete(self, obj: SQLModel) -> None:
        self._check_owned(obj)
        await self._session.delete(obj)

    async def flush(self) -> None:
        await self._session.flush()

    def _check_owned(self, obj: SQLModel) -> None:
        _require_tenant_model(type(obj))
        if getattr(obj, "org_id", None) != self._org_id:
            raise NotFound(f"{type(obj).__name__} not found")
