"""
Session store and session resolver.

The browser holds a signed JWT (``sub`` + ``sid``); the authoritative session
record lives in Redis under ``session:{sid}`` and carries the active
organization pointer. Expiry is the Redis TTL, mirrored by the JWT ``exp``.
"""

from __future__ import annotations

import json
import secrets
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import redis.asyncio as redis
import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.context import Identity
from app.models.user import User

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Session records (Redis)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionRecord:
    sid: str
    user_id: uuid.UUID
    active_org_id: Optional[uuid.UUID]
    created_at: str

    def to_json(self) -> str:
        return json.dumps(
            {
                "user_id": str(self.user_id),
                "active_org_id": str(self.active_org_id) if self.active_org_id else None,
                "created_at": self.created_at,
            }
        )

    @classmethod
    def from_json(cls, sid: str, raw: str) -> "SessionRecord":
        data = json.loads(raw)
        active = data.get("active_org_id")
        return cls(
            sid=sid,
            user_id=uuid.UUID(data["user_id"]),
            active_org_id=uuid.UUID(active) if active else None,
            created_at=data["created_at"],
        )


class SessionStore:
    """Redis-backed session records keyed by session id."""

    def __init__(self, client: redis.Redis, ttl_seconds: int):
        self._redis = client
        self._ttl = ttl_seconds

    @staticmethod
    def _key(sid: str) -> str:
        return f"session:{sid}"

    async def create(
        self, user_id: uuid.UUID, active_org_id: Optional[uuid.UUID] = None
    ) -> SessionRecord:
        record = SessionRecord(
            sid=secrets.token_urlsafe(32),
            user_id=user_id,
            active_org_id=active_org_id,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        await self._redis.set(self._key(record.sid), record.to_json(), ex=self._ttl)
        log.info("session.created", user_id=str(user_id), active_org_id=str(active_org_id))
        return record

    async def get(self, sid: str) -> Optional[SessionRecord]:
        raw = await self._redis.get(self._key(sid))
        if not raw:
            return None
        try:
            return SessionRecord.from_json(sid, raw)
        except (ValueError, KeyError):
            log.warning("session.corrupt", sid_prefix=sid[:8])
            return None

    async def set_active_org(
        self, sid: str, org_id: Optional[uuid.UUID]
    ) -> Optional[SessionRecord]:
        """Repoint the session at another organization, keeping its remaining TTL."""
        record = await self.get(sid)
        if record is None:
            return None
        updated = replace(record, active_org_id=org_id)
        await self._redis.set(self._key(sid), updated.to_json(), keepttl=True)
        log.info("session.active_org_changed", user_id=str(record.user_id), org_id=str(org_id))
        return updated

    async def activate_after_commit(
        self, session: AsyncSession, sid: str, org_id: uuid.UUID
    ) -> Optional[SessionRecord]:
        """Commit the request's writes, then switch to ``org_id``.

        A failed commit leaves the session pointing where it was.
        """
        await session.commit()
        return await self.set_active_org(sid, org_id)

    async def delete(self, sid: str) -> None:
        await self._redis.delete(self._key(sid))


# ---------------------------------------------------------------------------
# Session tokens (JWT)
# ---------------------------------------------------------------------------

def create_session_token(
    user_id: uuid.UUID,
    sid: str,
    settings: Settings,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create the signed cookie value for a session."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(seconds=settings.session_max_age))
    payload = {"sub": str(user_id), "sid": sid, "iat": now, "exp": exp}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str, settings: Settings) -> dict:
    """Decode and verify a session JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def read_session_token(request: Request, settings: Settings) -> Optional[str]:
    """Session cookie first, then ``Authorization: Bearer`` for non-browser clients."""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


async def resolve_session(
    request: Request,
    db: AsyncSession,
    store: SessionStore,
    settings: Settings,
) -> Optional[Identity]:
    """Map inbound credentials to an Identity, or None. Never raises for bad credentials."""
    token = read_session_token(request, settings)
    if not token:
        return None

    try:
        payload = decode_session_token(token, settings)
        sid = payload["sid"]
        token_user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        return None

    record = await store.get(sid)
    if record is None or record.user_id != token_user_id:
        return None

    user = await db.get(User, record.user_id)
    if user is None:
        return None

    return Identity(
        user_id=user.id,
        name=user.name,
        email=user.email,
        session_id=record.sid,
        active_org_id=record.active_org_id,
    )
