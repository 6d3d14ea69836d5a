"""
Authentication endpoints.

- Email/Password registration & login
- Server-side sessions (Redis) behind a signed session cookie
- Logout and current-user lookup
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    generate_csrf_token,
    get_app_settings,
    get_session_store,
    hash_password,
    require_user,
    verify_password,
)
from app.core.config import Settings
from app.core.context import Identity
from app.core.database import get_session
from app.core.sessions import SessionRecord, SessionStore, create_session_token
from app.models.user import User
from app.services import organizations as org_service
from zelus_shared.schemas.users import AuthResponse, LoginRequest, MeResponse, RegisterRequest

log = structlog.get_logger()
router = APIRouter()

MIN_PASSWORD_LENGTH = 8


def _set_session_cookies(
    response: Response, record: SessionRecord, settings: Settings
) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    token = create_session_token(record.user_id, record.sid, settings)
    cookie_kwargs = {
        "secure": not settings.debug,  # allow non-HTTPS in dev
        "samesite": "lax",
        "path": "/",
        "max_age": settings.session_max_age,
    }
    response.set_cookie(key=settings.session_cookie_name, value=token, httponly=True, **cookie_kwargs)
    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=generate_csrf_token(),
        httponly=False,  # JS must read this
        **cookie_kwargs,
    )


def _normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Email/Password Registration
# ---------------------------------------------------------------------------

@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
):
    """Register a new user. The session starts without an active organization."""
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )

    email = _normalize_email(body.email)
    result = await session.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(name=body.name.strip(), email=email, password_hash=hash_password(body.password))
    session.add(user)
    await session.flush()

    record = await store.create(user.id)
    _set_session_cookies(response, record, settings)

    log.info("user.registered", user_id=str(user.id))
    return AuthResponse(user_id=str(user.id), email=email, message="Registration successful")


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
):
    """Authenticate with email/password and open a session."""
    email = _normalize_email(body.email)
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not user.password_hash:
        log.warning("auth.login_failure", reason="unknown_user")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", user_id=str(user.id), reason="bad_password")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    active_org_id = await org_service.default_org_id(user.id, session)
    record = await store.create(user.id, active_org_id)
    _set_session_cookies(response, record, settings)

    log.info("auth.login_success", user_id=str(user.id))
    return AuthResponse(
        user_id=str(user.id),
        email=user.email,
        active_organization_id=str(active_org_id) if active_org_id else None,
        message="Login successful",
    )


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.post("/logout")
async def logout(
    response: Response,
    identity: Identity = Depends(require_user),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
):
    """Invalidate the current session."""
    await store.delete(identity.session_id)
    response.delete_cookie(settings.session_cookie_name, path="/")
    response.delete_cookie(settings.csrf_cookie_name, path="/")
    log.info("auth.logout", user_id=str(identity.user_id))
    return {"message": "Logged out"}


@router.get("/me", response_model=MeResponse)
async def me(
    identity: Identity = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """The signed-in user and the session's active organization."""
    user = await session.get(User, identity.user_id)
    return MeResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        email_verified=user.email_verified,
        active_organization_id=identity.active_org_id,
    )
